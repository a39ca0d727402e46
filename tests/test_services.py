# tests/test_services.py
import os
import tempfile
import unittest
from datetime import timedelta
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError, NoCredentialsError

from souldeep.config import AppConfig
from souldeep.errors import (
    ConfigurationError,
    PersonaNotFoundError,
    SynthesisUnavailableError,
)
from souldeep.models.archetypes import ConflictArchetype
from souldeep.models.personas import QuestionnaireAnswers, StoredPersona
from souldeep.services.factory import get_service
from souldeep.services.local_storage import LocalPersonaStore
from souldeep.services.mock_synthesizer import MockSynthesizer
from souldeep.services.persona_service import PersonaService
from souldeep.services.persona_store import DynamoDBPersonaStore
from souldeep.services.synthesizer import OpenAISynthesizer


def make_answers(seams="I shut down.", needs=3, avoid=3):
    return QuestionnaireAnswers(
        B14="A friend kept a secret from me for years.",
        B16="Nothing important left unsaid.",
        B15=seams,
        B21_A=needs,
        B21_B=avoid,
    )


def make_stored_persona(**answer_kwargs):
    answers = make_answers(**answer_kwargs)
    return StoredPersona(
        answers=answers,
        record=answers.to_record(),
        persona=MockSynthesizer().synthesize(answers),
    )


def client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "Operation")


class TestPersonaService(unittest.TestCase):
    """Test cases for the persona orchestration service."""

    def setUp(self):
        self.store = MagicMock()
        self.synthesizer = MockSynthesizer()
        self.service = PersonaService(synthesizer=self.synthesizer, store=self.store)

    def test_submit_complete(self):
        """Synthesized and stored personas report status complete."""
        self.store.append.return_value = True

        result = self.service.submit(make_answers())

        self.assertEqual(result.status, "complete")
        self.assertTrue(result.stored)
        self.assertIsNone(result.error)

        # Verify the stored persona
        stored = self.store.append.call_args[0][0]
        self.assertEqual(stored.persona_id, result.persona_id)
        self.assertEqual(stored.record.seams_text, "I shut down.")

    def test_submit_partial_when_storage_fails(self):
        """A storage failure still returns the persona, as a partial success."""
        self.store.append.return_value = False

        result = self.service.submit(make_answers())

        self.assertEqual(result.status, "partial")
        self.assertFalse(result.stored)
        self.assertIsNotNone(result.error)
        self.assertEqual(result.persona.structural_principle, "The Scar Forged The Foundation")

    def test_submit_propagates_unavailable_synthesis(self):
        """Synthesis failures propagate and nothing is stored."""
        synthesizer = MagicMock()
        synthesizer.synthesize.side_effect = SynthesisUnavailableError("timeout")
        service = PersonaService(synthesizer=synthesizer, store=self.store)

        with self.assertRaises(SynthesisUnavailableError):
            service.submit(make_answers())

        self.store.append.assert_not_called()

    def test_get_persona_not_found(self):
        self.store.get.return_value = None

        with self.assertRaises(PersonaNotFoundError):
            self.service.get_persona("missing")

    def test_compare(self):
        """Comparing stored personas classifies their records."""
        personas = {
            "a": make_stored_persona(needs=1),
            "b": make_stored_persona(needs=5),
        }
        self.store.get.side_effect = personas.get

        result = self.service.compare("a", "b")

        self.assertEqual(result.label, ConflictArchetype.MIS_DIRECTION)

    def test_compare_unknown_persona(self):
        self.store.get.return_value = None

        with self.assertRaises(PersonaNotFoundError):
            self.service.compare("a", "b")


class TestLocalPersonaStore(unittest.TestCase):
    """Test cases for the local JSON persona store."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.store = LocalPersonaStore(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_append_and_get(self):
        persona = make_stored_persona(seams="I yell")

        self.assertTrue(self.store.append(persona))

        loaded = self.store.get(persona.persona_id)
        self.assertEqual(loaded.model_dump(), persona.model_dump())

    def test_append_never_overwrites(self):
        """Appending the same persona_id twice keeps the first record."""
        persona = make_stored_persona(seams="I yell")
        self.assertTrue(self.store.append(persona))

        changed_record = persona.record.model_copy(update={"seams_text": "changed"})
        replacement = persona.model_copy(update={"record": changed_record})
        self.assertFalse(self.store.append(replacement))
        self.assertEqual(self.store.get(persona.persona_id).record.seams_text, "I yell")

    def test_rejects_unsafe_ids(self):
        self.assertIsNone(self.store.get("../secrets"))

    def test_get_missing(self):
        self.assertIsNone(self.store.get("missing"))

    def test_list_personas(self):
        first = make_stored_persona(seams="I yell")
        second = make_stored_persona(seams="I flee").model_copy(
            update={"created_at": first.created_at + timedelta(seconds=1)}
        )
        self.store.append(first)
        self.store.append(second)

        summaries = self.store.list_personas()

        self.assertEqual(len(summaries), 2)
        self.assertEqual(summaries[0]["persona_id"], second.persona_id)
        self.assertEqual(summaries[0]["archetype"], "Flee")
        self.assertEqual(len(self.store.list_personas(limit=1)), 1)


class TestDynamoDBPersonaStore(unittest.TestCase):
    """Test cases for the DynamoDB persona store."""

    def setUp(self):
        self.dynamodb = MagicMock()
        self.table = self.dynamodb.Table.return_value
        self.store = DynamoDBPersonaStore(table_name="test-personas", dynamodb=self.dynamodb)

    def test_append(self):
        """Personas are written with a condition that forbids overwrites."""
        persona = make_stored_persona()

        self.assertTrue(self.store.append(persona))

        kwargs = self.table.put_item.call_args.kwargs
        self.assertEqual(kwargs["Item"]["persona_id"], persona.persona_id)
        self.assertEqual(kwargs["ConditionExpression"], "attribute_not_exists(persona_id)")

    def test_append_existing_id(self):
        self.table.put_item.side_effect = client_error("ConditionalCheckFailedException")

        self.assertFalse(self.store.append(make_stored_persona()))

    def test_append_failure(self):
        self.table.put_item.side_effect = client_error("ProvisionedThroughputExceededException")

        self.assertFalse(self.store.append(make_stored_persona()))

    def test_get(self):
        persona = make_stored_persona()
        self.table.get_item.return_value = {
            "Item": {"persona_data": persona.model_dump_json(by_alias=True)}
        }

        self.assertEqual(self.store.get(persona.persona_id).model_dump(), persona.model_dump())
        self.table.get_item.assert_called_with(Key={"persona_id": persona.persona_id})

    def test_get_missing(self):
        self.table.get_item.return_value = {}

        self.assertIsNone(self.store.get("missing"))

    def test_ensure_table_exists_creates_table(self):
        self.dynamodb.meta.client.describe_table.side_effect = client_error(
            "ResourceNotFoundException"
        )

        self.store.ensure_table_exists()

        self.dynamodb.create_table.assert_called_once()
        self.assertEqual(
            self.dynamodb.create_table.call_args.kwargs["TableName"], "test-personas"
        )

    def test_list_personas(self):
        self.table.scan.return_value = {
            "Items": [
                {"persona_id": "old", "created_at": "2026-01-01T00:00:00"},
                {"persona_id": "new", "created_at": "2026-02-01T00:00:00"},
            ]
        }

        summaries = self.store.list_personas()

        self.assertEqual([s["persona_id"] for s in summaries], ["new", "old"])

    def test_list_personas_reads_every_page(self):
        """The newest persona is found even when it sits on a later scan page."""
        self.table.scan.side_effect = [
            {
                "Items": [{"persona_id": "old", "created_at": "2026-01-01T00:00:00"}],
                "LastEvaluatedKey": {"persona_id": "old"},
            },
            {"Items": [{"persona_id": "new", "created_at": "2026-02-01T00:00:00"}]},
        ]

        summaries = self.store.list_personas(limit=1)

        self.assertEqual([s["persona_id"] for s in summaries], ["new"])
        self.assertEqual(self.table.scan.call_count, 2)
        first_call, second_call = self.table.scan.call_args_list
        self.assertNotIn("Limit", first_call.kwargs)
        self.assertEqual(second_call.kwargs["ExclusiveStartKey"], {"persona_id": "old"})

    def test_list_personas_scan_failure(self):
        self.table.scan.side_effect = client_error("ProvisionedThroughputExceededException")

        self.assertEqual(self.store.list_personas(), [])


class TestFactory(unittest.TestCase):
    """Test cases for local vs AWS service selection."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_local_mode_services(self):
        config = AppConfig(LOCAL_MODE=True, LOCAL_STORAGE_PATH=self.tmpdir.name)

        self.assertIsInstance(get_service("storage", config), LocalPersonaStore)
        self.assertIsInstance(get_service("synthesizer", config), MockSynthesizer)

    def test_local_mode_with_api_key_uses_openai(self):
        config = AppConfig(
            LOCAL_MODE=True, LOCAL_STORAGE_PATH=self.tmpdir.name, OPENAI_API_KEY="sk-test"
        )

        synthesizer = get_service("synthesizer", config)
        self.assertIsInstance(synthesizer, OpenAISynthesizer)
        self.assertEqual(synthesizer.api_key, "sk-test")

    @patch("souldeep.services.persona_store.boto3.resource")
    def test_aws_mode_storage(self, mock_resource):
        config = AppConfig(OPENAI_API_KEY="sk-test", PERSONA_TABLE_NAME="prod-personas")

        store = get_service("storage", config)

        self.assertIsInstance(store, DynamoDBPersonaStore)
        self.assertEqual(store.table_name, "prod-personas")
        mock_resource.assert_called_once_with("dynamodb", region_name="us-east-2")

    def test_unknown_service(self):
        with self.assertRaises(ValueError):
            get_service("questionnaire", AppConfig())


class TestAppConfig(unittest.TestCase):
    """Test cases for configuration loading."""

    def test_load_local_mode(self):
        env = {"LOCAL_MODE": "true", "SYNTHESIS_MAX_RETRIES": "5"}
        with patch.dict(os.environ, env, clear=True):
            config = AppConfig.load()

        self.assertTrue(config.is_local_mode())
        self.assertTrue(config.uses_mock_synthesizer())
        self.assertEqual(config.SYNTHESIS_MAX_RETRIES, 5)
        self.assertEqual(config.ENV_TIER, "local")

    def test_missing_environment_is_fatal(self):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigurationError):
                AppConfig.load()

    @patch("souldeep.config.boto3.client")
    def test_load_from_parameter_store(self, mock_client):
        """Required values are read from SSM under CLIENT_ID/ENV_TIER."""
        mock_client.return_value.get_parameters.return_value = {
            "Parameters": [
                {"Name": "souldeep/prod/OPENAI_API_KEY", "Value": "sk-prod"},
                {"Name": "souldeep/prod/PERSONA_TABLE_NAME", "Value": "prod-personas"},
            ]
        }
        env = {"CLIENT_ID": "souldeep", "ENV_TIER": "prod", "AWS_DEFAULT_REGION": "us-east-1"}

        with patch.dict(os.environ, env, clear=True):
            config = AppConfig.load()

        self.assertFalse(config.is_local_mode())
        self.assertEqual(config.OPENAI_API_KEY, "sk-prod")
        self.assertEqual(config.PERSONA_TABLE_NAME, "prod-personas")
        mock_client.assert_called_once_with("ssm", region_name="us-east-1")

    @patch("souldeep.config.boto3.client")
    def test_missing_credentials_are_fatal(self, mock_client):
        mock_client.return_value.get_parameters.return_value = {
            "Parameters": [
                {"Name": "souldeep/prod/PERSONA_TABLE_NAME", "Value": "prod-personas"}
            ]
        }
        env = {"CLIENT_ID": "souldeep", "ENV_TIER": "prod", "AWS_DEFAULT_REGION": "us-east-1"}

        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(ConfigurationError):
                AppConfig.load()

    @patch("souldeep.config.boto3.client")
    def test_unreachable_parameter_store_is_fatal(self, mock_client):
        """Botocore failures such as missing AWS credentials become configuration errors."""
        mock_client.return_value.get_parameters.side_effect = NoCredentialsError()
        env = {"CLIENT_ID": "souldeep", "ENV_TIER": "prod", "AWS_DEFAULT_REGION": "us-east-1"}

        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(ConfigurationError):
                AppConfig.load()


if __name__ == "__main__":
    unittest.main()
