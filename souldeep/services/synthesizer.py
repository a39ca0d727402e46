# souldeep/services/synthesizer.py
import json
import time
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

import requests
from pydantic import ValidationError

from souldeep.errors import (
    PersonaValidationError,
    SynthesisError,
    SynthesisUnavailableError,
)
from souldeep.models.personas import QuestionnaireAnswers, SynthesizedPersona

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

SYSTEM_INSTRUCTION = """
You are the "SoulDeep Persona Synthesis Engine," operating with a Non-Compliant Ethos.
Your primary function is to interpret user input to define their relational vulnerability,
conflict footprint, and defense mechanism.

NON-COMPLIANT ETHOS: You MUST choose structural honesty, defend core boundaries, and expose
truth over generic compliance or attempting to keep the peace.

Inputs:
1. B14 (The Scar): Measures honesty/vulnerability capacity.
2. B16 (The Foundation): Defines limits of required emotional security.
3. B15 (The Seams): The user's go-to toxic coping mechanism (e.g., Withdrawing, Lashing Out).
4. TKI Score (1.0 to 5.0): Low = Competing/Collaborating; High = Avoiding/Accommodating.

Respond with a single JSON object and nothing else:

{
    "persona_analysis": "summary of vulnerability, resilience capacity and core belief",
    "B15_seams_mechanism": "one toxic coping mechanism, e.g. Withdrawing",
    "B21_tki_score": the TKI score given in the input,
    "structural_principle": "short principle, e.g. The Scar Forged The Foundation",
    "scar_demand_requirement": "radical vulnerability a match must show for the user to feel seen",
    "red_button_requirement": "the trigger phrase, action or context that activates the defense",
    "blast_radius_archetype": "exactly one of: Erupt, Freeze, Flee, Panic"
}
"""


class PersonaSynthesizer(ABC):
    """Turns questionnaire answers into a persona."""

    @abstractmethod
    def synthesize(self, answers: QuestionnaireAnswers) -> SynthesizedPersona:
        ...


def parse_persona(content: str) -> SynthesizedPersona:
    """
    Parse and validate the model's JSON output.

    Raises:
        PersonaValidationError: content is not JSON or violates the persona contract
    """
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise PersonaValidationError(f"Synthesizer returned invalid JSON: {str(e)}")

    if not isinstance(data, dict):
        raise PersonaValidationError("Synthesizer returned JSON that is not an object")

    try:
        return SynthesizedPersona.model_validate(data)
    except ValidationError as e:
        raise PersonaValidationError(f"Synthesizer returned an invalid persona: {e}")


class OpenAISynthesizer(PersonaSynthesizer):
    """Persona synthesis through the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        max_retries: int = 2,
        backoff_seconds: float = 2.0,
    ):
        self.api_key = api_key
        self.api_url = "https://api.openai.com/v1/chat/completions"
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _create_user_prompt(self, answers: QuestionnaireAnswers) -> str:
        return f"""
        User B14 Answer (The Scar): "{answers.scar}"
        User B16 Answer (The Foundation): "{answers.foundation}"
        User B15 Answer (The Seams): "{answers.seams}"
        Calculated TKI Conflict Score: {answers.tki_score():.1f}

        Based on these inputs, perform the full Conflict Mapping Protocol and provide the structured output.
        """

    def _request_payload(self, answers: QuestionnaireAnswers) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": self._create_user_prompt(answers)},
            ],
            "temperature": 0.3,
            "response_format": {"type": "json_object"},
        }

    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        """POST with retries on transient failures."""
        attempts = self.max_retries + 1
        last_error = ""

        for attempt in range(1, attempts + 1):
            try:
                response = requests.post(
                    self.api_url, headers=self.headers, json=payload, timeout=self.timeout
                )
            except requests.RequestException as e:
                last_error = f"Synthesis request failed: {str(e)}"
            else:
                if response.status_code == 200:
                    return response
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    logger.error(f"Error in persona synthesis: {response.text}")
                    raise SynthesisError(
                        f"Synthesis failed with status {response.status_code}"
                    )
                last_error = f"Synthesis failed with status {response.status_code}"

            logger.warning(f"{last_error} (attempt {attempt}/{attempts})")
            if attempt < attempts:
                time.sleep(self.backoff_seconds * attempt)

        raise SynthesisUnavailableError(last_error)

    def synthesize(self, answers: QuestionnaireAnswers) -> SynthesizedPersona:
        """
        Synthesize a persona from questionnaire answers.

        Args:
            answers: Validated questionnaire answers

        Returns:
            SynthesizedPersona parsed from the model response

        Raises:
            SynthesisUnavailableError: provider unreachable after retries
            SynthesisError: provider rejected the request
            PersonaValidationError: provider output breaks the persona contract
        """
        response = self._post(self._request_payload(answers))

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise PersonaValidationError(f"Unexpected synthesis response shape: {str(e)}")

        persona = parse_persona(content)
        logger.info(
            f"Persona synthesized (archetype: {persona.blast_radius_archetype.value})"
        )
        return persona
