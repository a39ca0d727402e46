# souldeep/routers/pages.py
import html
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from ..dependencies import get_persona_service
from ..errors import SynthesisError, SynthesisUnavailableError
from ..models.personas import QuestionnaireAnswers
from ..services.persona_service import PersonaService

router = APIRouter(tags=["pages"])

logger = logging.getLogger(__name__)

templates_dir = Path(__file__).resolve().parent.parent / "templates"

# Set up templates if the directory exists
if templates_dir.exists():
    templates = Jinja2Templates(directory=str(templates_dir))
    logger.info(f"Templates directory configured at {templates_dir}")
else:
    logger.warning(f"Templates directory not found at {templates_dir}")
    templates = None


def _render(request: Request, name: str, context: dict, status_code: int = 200):
    if templates:
        return templates.TemplateResponse(
            request, name, context, status_code=status_code
        )

    # Fallback to simple HTML response
    message = context.get("error") or context.get("message", "")
    return HTMLResponse(
        content=f"""
        <html>
            <head><title>SoulDeep</title></head>
            <body>
                <h1>SoulDeep Integrity Protocol</h1>
                <p>{html.escape(str(message))}</p>
                <p>Templates could not be loaded; use the JSON API at /api/personas.</p>
            </body>
        </html>
        """,
        status_code=status_code,
    )


@router.get("/", response_class=HTMLResponse)
async def questionnaire(request: Request):
    """Render the Phase 1 questionnaire."""
    return _render(
        request, "index.html", {"message": "Phase 1: Integrity Protocol Core is ready."}
    )


@router.post("/generate", response_class=HTMLResponse)
async def generate(
    request: Request, service: PersonaService = Depends(get_persona_service)
):
    """Handle the questionnaire form and render the synthesized persona."""
    form = await request.form()

    try:
        answers = QuestionnaireAnswers.model_validate(dict(form))
    except ValidationError as e:
        logger.info(f"Rejected questionnaire submission: {e.error_count()} errors")
        return _render(
            request,
            "index.html",
            {"error": "Please answer every question; TKI scores range from 1 to 5."},
            status_code=422,
        )

    try:
        result = await run_in_threadpool(service.submit, answers)
    except SynthesisUnavailableError as e:
        logger.error(f"Persona synthesis unavailable: {str(e)}")
        return _render(
            request,
            "index.html",
            {"error": "AI synthesis is temporarily unavailable. Please try again."},
            status_code=503,
        )
    except SynthesisError as e:
        logger.error(f"Persona synthesis failed: {str(e)}")
        return _render(
            request,
            "index.html",
            {"error": "AI synthesis failed. Check server log for details."},
            status_code=502,
        )

    return _render(request, "persona.html", {"result": result})
