"""Signup, login and logout.

Endpoints:
- GET /        - Redirect to the recipe list or the login page
- GET/POST /signup - Register a new user
- GET/POST /login  - Authenticate and start a session
- GET /logout      - Revoke the session
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ..context import AppContext, CallerIdentity
from ..deps import get_context, get_credentials, get_db, optional_identity
from ..errors import Conflict, InvalidCredentials, ValidationError
from ..services.credentials import CredentialStore
from ..views import render

router = APIRouter()
logger = logging.getLogger("recipebox.auth")


@router.get("/")
def home(identity: Optional[CallerIdentity] = Depends(optional_identity)):
    target = "/recipes" if identity else "/login"
    return RedirectResponse(target, status_code=303)


@router.get("/signup")
def signup_form(request: Request, identity: Optional[CallerIdentity] = Depends(optional_identity)):
    return render(request, "signup", identity)


@router.post("/signup")
def signup(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    credentials: CredentialStore = Depends(get_credentials),
):
    try:
        credentials.register(username, password)
    except (Conflict, ValidationError) as e:
        return render(request, "signup", None, error=e.message, username=username,
                      status_code=e.status_code)
    return RedirectResponse("/login", status_code=303)


@router.get("/login")
def login_form(request: Request, identity: Optional[CallerIdentity] = Depends(optional_identity)):
    return render(request, "login", identity)


@router.post("/login")
def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    credentials: CredentialStore = Depends(get_credentials),
    ctx: AppContext = Depends(get_context),
):
    try:
        user_id = credentials.authenticate(username, password)
    except InvalidCredentials as e:
        logger.info("Failed login attempt")
        return render(request, "login", None, error=e.message, username=username,
                      status_code=e.status_code)

    response = RedirectResponse("/recipes", status_code=303)
    ctx.sessions.set_cookie(response, ctx.sessions.establish(user_id))
    logger.info(f"User {user_id} logged in")
    return response


@router.get("/logout")
def logout(
    request: Request,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
):
    ctx.sessions.revoke(request, db)
    response = RedirectResponse("/", status_code=303)
    ctx.sessions.clear_cookie(response)
    return response
