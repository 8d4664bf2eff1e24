"""
FastAPI Backend for the Teach-not-solve Tutor

Endpoints:
    POST   /api/tutor                         - One stateless tutor exchange
    POST   /sessions                          - Create a tutoring session
    GET    /sessions/{id}                     - Session state (transcript, attempts)
    POST   /sessions/{id}/start               - Start a problem (resets the session)
    POST   /sessions/{id}/step                - Submit a step (graded attempt)
    POST   /sessions/{id}/practice            - Practice set for a topic
    POST   /sessions/{id}/grade               - Grade pasted work
    POST   /sessions/{id}/demo                - Demo lesson
    DELETE /sessions/{id}                     - Reset the session (?discard=true removes it)
    GET    /learners/{id}/profile             - Learning profile + accessibility
    PUT    /learners/{id}/profile             - Update profile
    GET    /learners/{id}/progress            - Windowed rollup + weakest skills
    GET    /learners/{id}/progress.csv        - CSV report
    DELETE /learners/{id}/progress            - Clear mastery + events
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import get_settings
from core.exceptions import InvalidRequestError, TutorError
from core.learner import AccessibilityOptions, LearningProfile
from core.mastery_ledger import DEFAULT_WINDOW_DAYS, rank_weakest
from core.prompt_builder import (
    DEFAULT_LEVEL, DEFAULT_SUBJECT, NORMAL, SESSION, TUTOR, TutorContext,
)
from core.report import rollup_to_csv
from core.transcript import Turn
from redis_store import ProgressStore, create_store
from teaching.session_controller import ExchangeResult, SessionController, SessionOptions
from teaching.tutor_service import TutorService, create_tutor_service

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("api")

# ==================== Initialize ====================

app = FastAPI(
    title="Teach-not-solve Tutor API",
    description="Interactive tutor that coaches instead of solving",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Shared components, created on first use
_components: Dict[str, Any] = {}


def get_store() -> ProgressStore:
    if "store" not in _components:
        _components["store"] = create_store(settings)
    return _components["store"]


def get_tutor() -> TutorService:
    if "tutor" not in _components:
        _components["tutor"] = create_tutor_service(settings)
    return _components["tutor"]


def get_controller(tutor: TutorService = Depends(get_tutor),
                   store: ProgressStore = Depends(get_store)) -> SessionController:
    if "controller" not in _components:
        _components["controller"] = SessionController(tutor=tutor, store=store)
    return _components["controller"]


# ==================== Error Handling ====================

@app.exception_handler(TutorError)
def handle_tutor_error(request: Request, exc: TutorError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError):
    details = [err.get("msg") for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


# ==================== Request/Response Models ====================

class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TutorRequest(_WireModel):
    task: Optional[str] = TUTOR
    subject: Optional[str] = None
    level: Optional[str] = None
    style: Optional[str] = None
    accessibility: Optional[Dict[str, Any]] = None
    learning_profile: Optional[Dict[str, Any]] = Field(None, alias="learningProfile")
    mode: Optional[str] = NORMAL
    coach_mode: Optional[bool] = Field(True, alias="coachMode")
    history: Optional[List[Dict[str, Any]]] = None
    message: str
    attempts: Optional[int] = 0
    rubric: Optional[str] = None
    topic_changed: Optional[bool] = Field(False, alias="topicChanged")

    def to_context(self) -> TutorContext:
        return TutorContext(
            message=self.message,
            task=self.task or TUTOR,
            subject=self.subject,
            level=self.level,
            style=self.style,
            accessibility=AccessibilityOptions.from_dict(self.accessibility),
            profile=LearningProfile.from_dict(self.learning_profile),
            mode=self.mode or NORMAL,
            coach_mode=True if self.coach_mode is None else self.coach_mode,
            attempts=self.attempts or 0,
            history=[Turn.from_dict(h) for h in (self.history or []) if isinstance(h, dict)],
            topic_changed=bool(self.topic_changed),
            rubric=self.rubric,
        )


class CreateSessionRequest(_WireModel):
    learner_id: str = Field("default", alias="learnerId")
    subject: Optional[str] = None
    level: Optional[str] = None
    style: Optional[str] = None
    mode: str = SESSION
    coach_mode: bool = Field(True, alias="coachMode")


class MessageRequest(_WireModel):
    message: str


class StepRequest(_WireModel):
    message: str
    topic_changed: bool = Field(False, alias="topicChanged")


class PracticeRequest(_WireModel):
    topic: str


class GradeRequest(_WireModel):
    work: str
    rubric: Optional[str] = None


class ProfileRequest(_WireModel):
    learning_profile: Optional[Dict[str, Any]] = Field(None, alias="learningProfile")
    accessibility: Optional[Dict[str, Any]] = None


class ExchangeResponse(BaseModel):
    reply: str
    verdict: str
    skills: List[str]
    attempts: int
    status: str
    mastery_updates: List[dict] = []


# ==================== Helper Functions ====================

def exchange_response(result: ExchangeResult, status: str) -> ExchangeResponse:
    return ExchangeResponse(
        reply=result.reply,
        verdict=result.parsed.verdict.value,
        skills=result.parsed.skills,
        attempts=result.attempts,
        status=status,
        mastery_updates=[
            {
                "skill": r.skill,
                "correct_count": r.correct_count,
                "total_count": r.total_count,
                "current_streak": r.current_streak,
            }
            for r in result.mastery_updates
        ],
    )


def stat_to_dict(stat) -> dict:
    return {"skill": stat.skill, "correct": stat.correct, "total": stat.total, "percent": stat.percent}


# ==================== Core Endpoints ====================

@app.get("/")
def root(tutor: TutorService = Depends(get_tutor)):
    return {
        "status": "ok",
        "message": "Tutor API is running",
        "version": "1.0.0",
        "features": {
            "demo_mode": tutor.demo_mode,
            "store_backend": settings.store_backend,
        }
    }


@app.post("/api/tutor")
def tutor_exchange(payload: Any = Body(None), tutor: TutorService = Depends(get_tutor)):
    body = payload if isinstance(payload, dict) else {}

    message = body.get("message")
    if not isinstance(message, str) or not message.strip():
        raise InvalidRequestError("Missing message")

    try:
        request = TutorRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidRequestError(details=[err.get("msg") for err in e.errors()])

    try:
        reply = tutor.reply(request.to_context())
    except TutorError:
        raise
    except Exception as e:
        logger.exception("Tutor exchange failed")
        raise TutorError("Server error", details=str(e))

    return {"reply": reply}


# ==================== Session Endpoints ====================

@app.post("/sessions")
def create_session(request: CreateSessionRequest,
                   controller: SessionController = Depends(get_controller)):
    session = controller.create_session(SessionOptions(
        learner_id=request.learner_id,
        subject=request.subject,
        level=request.level,
        style=request.style,
        mode=request.mode,
        coach_mode=request.coach_mode,
    ))
    return session.to_dict()


@app.get("/sessions/{session_id}")
def get_session_state(session_id: str, controller: SessionController = Depends(get_controller)):
    return controller.get_session(session_id).to_dict()


@app.post("/sessions/{session_id}/start", response_model=ExchangeResponse)
def start_session(session_id: str, request: MessageRequest,
                  controller: SessionController = Depends(get_controller)):
    result = controller.start(session_id, request.message)
    return exchange_response(result, controller.get_session(session_id).status)


@app.post("/sessions/{session_id}/step", response_model=ExchangeResponse)
def submit_step(session_id: str, request: StepRequest,
                controller: SessionController = Depends(get_controller)):
    result = controller.submit_step(session_id, request.message, topic_changed=request.topic_changed)
    return exchange_response(result, controller.get_session(session_id).status)


@app.post("/sessions/{session_id}/practice", response_model=ExchangeResponse)
def practice(session_id: str, request: PracticeRequest,
             controller: SessionController = Depends(get_controller)):
    result = controller.practice(session_id, request.topic)
    return exchange_response(result, controller.get_session(session_id).status)


@app.post("/sessions/{session_id}/grade", response_model=ExchangeResponse)
def grade(session_id: str, request: GradeRequest,
          controller: SessionController = Depends(get_controller)):
    result = controller.grade(session_id, request.work, rubric=request.rubric)
    return exchange_response(result, controller.get_session(session_id).status)


@app.post("/sessions/{session_id}/demo", response_model=ExchangeResponse)
def start_demo(session_id: str, controller: SessionController = Depends(get_controller)):
    result = controller.start_demo(session_id)
    return exchange_response(result, controller.get_session(session_id).status)


@app.delete("/sessions/{session_id}")
def reset_session(session_id: str, discard: bool = False,
                  controller: SessionController = Depends(get_controller)):
    """
    Reset transcript and attempts; profile and progress are kept.

    With ?discard=true the session is removed instead.
    """
    if discard:
        controller.delete_session(session_id)
        return {"status": "deleted", "session_id": session_id}
    return controller.reset(session_id).to_dict()


# ==================== Learner Endpoints ====================

@app.get("/learners/{learner_id}/profile")
def get_profile(learner_id: str, store: ProgressStore = Depends(get_store)):
    profile, accessibility = store.load_profile(learner_id)
    return {
        "learner_id": learner_id,
        "learningProfile": profile.to_dict(),
        "accessibility": accessibility.to_wire(),
    }


@app.put("/learners/{learner_id}/profile")
def update_profile(learner_id: str, request: ProfileRequest, store: ProgressStore = Depends(get_store)):
    current_profile, current_access = store.load_profile(learner_id)
    profile = LearningProfile.from_dict({**current_profile.to_dict(), **(request.learning_profile or {})})
    accessibility = AccessibilityOptions.from_dict({**current_access.to_dict(), **(request.accessibility or {})})
    store.save_profile(learner_id, profile, accessibility)
    return {
        "learner_id": learner_id,
        "learningProfile": profile.to_dict(),
        "accessibility": accessibility.to_wire(),
    }


@app.get("/learners/{learner_id}/progress")
def get_progress(learner_id: str, subject: str = DEFAULT_SUBJECT, level: str = DEFAULT_LEVEL,
                 days: float = DEFAULT_WINDOW_DAYS, limit: int = 3,
                 store: ProgressStore = Depends(get_store)):
    ledger = store.load_ledger(learner_id)
    stats = ledger.rollup(subject, level, days=days)
    return {
        "learner_id": learner_id,
        "subject": subject,
        "level": level,
        "days": days,
        "skills": [stat_to_dict(s) for s in stats],
        "weakest": [stat_to_dict(s) for s in rank_weakest(stats)[:limit]],
        "events": len(ledger.events),
    }


@app.get("/learners/{learner_id}/progress.csv")
def export_progress(learner_id: str, subject: str = DEFAULT_SUBJECT, level: str = DEFAULT_LEVEL,
                    days: float = DEFAULT_WINDOW_DAYS, store: ProgressStore = Depends(get_store)):
    stats = store.load_ledger(learner_id).rollup(subject, level, days=days)
    return PlainTextResponse(
        rollup_to_csv(stats),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="progress.csv"'},
    )


@app.delete("/learners/{learner_id}/progress")
def clear_progress(learner_id: str, store: ProgressStore = Depends(get_store)):
    """Remove mastery and events; the profile stays."""
    store.clear_progress(learner_id)
    return {"status": "cleared", "learner_id": learner_id}


# ==================== Run Server ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
