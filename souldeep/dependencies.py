# souldeep/dependencies.py
from fastapi import Request

from souldeep.services.persona_service import PersonaService


def get_persona_service(request: Request) -> PersonaService:
    """Persona service built by the application factory."""
    return request.app.state.persona_service
