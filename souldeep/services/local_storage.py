# souldeep/services/local_storage.py
import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from souldeep.models.personas import StoredPersona

logger = logging.getLogger(__name__)


class LocalPersonaStore:
    """Persona storage in local JSON files when not using DynamoDB."""

    def __init__(self, base_path: str = "./local_storage"):
        self.base_path = Path(base_path)
        self.personas_dir = self.base_path / "personas"

        os.makedirs(self.personas_dir, exist_ok=True)
        logger.info(f"Local persona storage initialized at {self.personas_dir}")

    def _path_for(self, persona_id: str) -> Optional[Path]:
        if not persona_id or "/" in persona_id or "\\" in persona_id or ".." in persona_id:
            return None
        return self.personas_dir / f"{persona_id}.json"

    def ensure_table_exists(self):
        """Ensure local storage directory exists."""
        os.makedirs(self.personas_dir, exist_ok=True)
        logger.info(f"Local storage directory ensured at {self.personas_dir}")

    def append(self, persona: StoredPersona) -> bool:
        """Write a persona file once; existing files are left untouched."""
        path = self._path_for(persona.persona_id)
        if path is None:
            logger.error(f"Refusing to store persona with unsafe id {persona.persona_id!r}")
            return False

        try:
            with open(path, "x", encoding="utf-8") as f:
                f.write(persona.model_dump_json(by_alias=True, indent=2))
        except FileExistsError:
            logger.error(f"Persona {persona.persona_id} already exists, not overwriting")
            return False
        except OSError as e:
            logger.error(f"Error saving persona to local storage: {str(e)}")
            return False

        logger.debug(f"Persona {persona.persona_id} saved to {path}")
        return True

    def get(self, persona_id: str) -> Optional[StoredPersona]:
        path = self._path_for(persona_id)
        if path is None or not path.exists():
            logger.info(f"Persona {persona_id} not found in local storage")
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return StoredPersona.model_validate_json(f.read())
        except (OSError, ValidationError) as e:
            logger.error(f"Error reading persona {persona_id} from local storage: {str(e)}")
            return None

    def list_personas(self, limit: int = 100) -> List[Dict[str, Any]]:
        """List persona summaries from local storage, most recent first."""
        summaries = []
        for path in self.personas_dir.glob("*.json"):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable persona file {path}: {str(e)}")
                continue

            summaries.append(
                {
                    "persona_id": data.get("persona_id", path.stem),
                    "created_at": data.get("created_at", ""),
                    "archetype": data.get("persona", {}).get("blast_radius_archetype"),
                }
            )

        summaries.sort(key=lambda x: x["created_at"], reverse=True)
        return summaries[:limit]
