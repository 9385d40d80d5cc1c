"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the TheXempt collaboration
backend. Controllers are intentionally thin: they accept requests,
delegate to services, and return JSON responses.

Endpoints implemented:
- POST /api/auth/signup
- POST /api/auth/login
- GET /api/users/me, PATCH /api/users/me
- GET /api/users/{id}
- GET /api/users/{id}/skills, POST /api/users/skills
- GET /api/users/{id}/contributions
- GET /api/projects, POST /api/projects
- GET /api/projects/{id}, PUT /api/projects/{id}/status
- POST /api/projects/{id}/apply, GET /api/projects/{id}/applications
- PUT /api/applications/{id}/status
- GET /api/projects/{id}/contributions, POST /api/projects/{id}/contributions
- GET /health
"""

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlmodel import Session
import json
import logging
from typing import Optional
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services, models
from .auth import get_current_user
from .schemas import (
    ApplicationIn,
    ApplicationStatusIn,
    ContributionIn,
    LoginIn,
    ProfileUpdateIn,
    ProjectIn,
    ProjectStatusIn,
    SignupIn,
    SkillIn,
)
from .utils.rate_limit import InMemoryRateLimiter
from .config import settings

app = FastAPI(title="TheXempt Collaboration API")
logger = logging.getLogger("thexempt.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)
_auth_rate_limiter = InMemoryRateLimiter()
_api_rate_limiter = InMemoryRateLimiter()
AUTH_PATHS = frozenset({"/api/auth/signup", "/api/auth/login"})

# Serve the bundled web client when it is checked out next to the backend
if settings.STATIC_DIR.exists():
    app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")

create_db_and_tables()


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    limited = _check_rate_limits(request, req_id)
    if limited is not None:
        return limited
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": _client_host(request),
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": _client_host(request),
            },
            ensure_ascii=True,
        ),
    )
    return response


# Registered last so it wraps the request middleware, 429s included
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _check_rate_limits(request: Request, req_id: str) -> Optional[JSONResponse]:
    """Return a 429 response if the client is over a limit, else None.

    Runs before the body is read, so malformed requests count too.
    """
    path = request.url.path
    if not path.startswith("/api/"):
        return None
    client = _client_host(request)
    checks = [(_api_rate_limiter, client, settings.API_RATE_LIMIT_MAX, settings.API_RATE_LIMIT_WINDOW_SECONDS,
               "Too many requests, please try again later.")]
    if path in AUTH_PATHS:
        checks.append((_auth_rate_limiter, f"{client}:auth", settings.AUTH_RATE_LIMIT_MAX,
                       settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
                       "Too many authentication attempts, please try again later."))
    for limiter, key, max_requests, window, detail in checks:
        allowed, retry_after = limiter.allow(key, max_requests, window)
        if not allowed:
            logger.warning("rate_limited %s", json.dumps(
                {"request_id": req_id, "path": path, "client": client}, ensure_ascii=True))
            return JSONResponse(
                status_code=429,
                content={"detail": detail},
                headers={"Retry-After": str(retry_after), "X-Request-ID": req_id},
            )
    return None


def _http_error(exc: Exception) -> HTTPException:
    """Map a service exception to the matching HTTP error."""
    if isinstance(exc, services.NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, services.PermissionDeniedError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, services.ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@app.post('/api/auth/signup')
def signup(payload: SignupIn, db: Session = Depends(get_session)):
    """Create an account and return a 7-day token plus the new profile."""
    try:
        return services.AuthService(db).signup(payload.email, payload.password, payload.name)
    except ValueError as e:
        raise _http_error(e)


@app.post('/api/auth/login')
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Exchange email and password for a token."""
    try:
        return services.AuthService(db).login(payload.email, payload.password)
    except ValueError as e:
        raise _http_error(e)


@app.get('/api/users/me')
def get_me(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    try:
        return services.user_payload(services.UserService(db).get_user(user.id))
    except LookupError as e:
        raise _http_error(e)


@app.patch('/api/users/me')
def update_me(payload: ProfileUpdateIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Change the caller's display name."""
    try:
        return services.user_payload(services.UserService(db).rename(user.id, payload.name))
    except (LookupError, ValueError) as e:
        raise _http_error(e)


@app.post('/api/users/skills')
def add_skill(payload: SkillIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    try:
        s = services.UserService(db).add_skill(user.id, payload.skill, payload.proficiency)
    except ValueError as e:
        raise _http_error(e)
    return {'id': s.id, 'skill': s.skill, 'proficiency': s.proficiency}


@app.get('/api/users/{user_id}')
def get_user(user_id: int, db: Session = Depends(get_session)):
    """Public profile of any user (email omitted)."""
    try:
        return services.user_payload(services.UserService(db).get_user(user_id), include_email=False)
    except LookupError as e:
        raise _http_error(e)


@app.get('/api/users/{user_id}/skills')
def list_skills(user_id: int, db: Session = Depends(get_session)):
    return services.UserService(db).list_skills(user_id)


@app.get('/api/users/{user_id}/contributions')
def list_user_contributions(user_id: int, db: Session = Depends(get_session)):
    return services.ContributionService(db).list_for_user(user_id)


@app.get('/api/projects')
def list_projects(db: Session = Depends(get_session)):
    """Open projects, newest first."""
    return services.ProjectService(db).list_open()


@app.post('/api/projects')
def create_project(payload: ProjectIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    try:
        p = services.ProjectService(db).create(user.id, payload.title, payload.description, payload.required_skills)
    except ValueError as e:
        raise _http_error(e)
    return services.project_payload(p)


@app.get('/api/projects/{project_id}')
def get_project(project_id: int, db: Session = Depends(get_session)):
    try:
        return services.ProjectService(db).get(project_id)
    except LookupError as e:
        raise _http_error(e)


@app.put('/api/projects/{project_id}/status')
def set_project_status(project_id: int, payload: ProjectStatusIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Open or close a project. Owner only."""
    try:
        p = services.ProjectService(db).set_status(project_id, user.id, payload.status)
    except (LookupError, ValueError) as e:
        raise _http_error(e)
    return services.project_payload(p)


@app.post('/api/projects/{project_id}/apply')
def apply_to_project(project_id: int, payload: ApplicationIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Apply to a project.

    The match score against the project's required skills is computed
    here, once, and stored with the application.
    """
    try:
        a = services.ApplicationService(db).apply(project_id, user.id, payload.message)
    except (LookupError, ValueError) as e:
        raise _http_error(e)
    return services.application_payload(a)


@app.get('/api/projects/{project_id}/applications')
def list_applications(project_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Applications for a project the caller owns, best match first."""
    try:
        return services.ApplicationService(db).list_for_project(project_id, user.id)
    except (LookupError, ValueError) as e:
        raise _http_error(e)


@app.put('/api/applications/{application_id}/status')
def set_application_status(application_id: int, payload: ApplicationStatusIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Accept or reject an application. Only the project owner may do this."""
    try:
        a = services.ApplicationService(db).set_status(application_id, user.id, payload.status)
    except (LookupError, ValueError) as e:
        raise _http_error(e)
    return services.application_payload(a)


@app.get('/api/projects/{project_id}/contributions')
def list_project_contributions(project_id: int, db: Session = Depends(get_session)):
    return services.ContributionService(db).list_for_project(project_id)


@app.post('/api/projects/{project_id}/contributions')
def record_contribution(project_id: int, payload: ContributionIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Record a contribution and credit its points to the caller.

    `points` defaults to 10 when omitted. The response includes the
    caller's new point total, badges and any badges earned just now.
    """
    try:
        return services.ContributionService(db).record(project_id, user.id, payload.description, payload.points)
    except (LookupError, ValueError) as e:
        raise _http_error(e)


@app.get("/", response_class=HTMLResponse)
def home():
    """Serve the web client if present, else a minimal landing page."""
    index = settings.STATIC_DIR / "index.html"
    if index.exists():
        return FileResponse(index)
    return """
    <!DOCTYPE html>
    <html>
    <head>
      <meta charset="UTF-8" />
      <title>TheXempt API</title>
      <style>
        body { font-family: Arial, sans-serif; margin: 32px; }
        a { color: #0a6; }
        .card { max-width: 640px; padding: 16px; border: 1px solid #ddd; border-radius: 8px; }
      </style>
    </head>
    <body>
      <div class="card">
        <h1>TheXempt API</h1>
        <ul>
          <li><a href="/docs">Swagger UI</a></li>
        </ul>
        <p>Use <code>/api/auth/signup</code> or <code>/api/auth/login</code> to get a token, then browse <code>/api/projects</code>.</p>
      </div>
    </body>
    </html>
    """


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
