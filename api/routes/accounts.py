"""
api/routes/accounts.py -- The three account pages.

Routes:
  GET /everyone  -- any authenticated caller
  GET /admin     -- role ADMIN
  GET /managers  -- role MANAGER or ADMIN

Access policy is NOT declared here. The access-control middleware in
api/main.py evaluates the route rule table before any of these handlers run;
get_current_user only asserts that it did.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, PlainTextResponse

from auth.dependencies import get_current_user
from auth.models import User

router = APIRouter()


@router.get("/everyone", response_class=PlainTextResponse)
def everyone(user: User = Depends(get_current_user)) -> str:
    return "Hello Everyone"


@router.get("/admin", response_class=HTMLResponse)
def admin(user: User = Depends(get_current_user)) -> str:
    return "<h1>Administrator Page</h1> Greetings Admin!"


@router.get("/managers", response_class=HTMLResponse)
def managers(user: User = Depends(get_current_user)) -> str:
    return "<h1>Managers Page</h1> Greetings Manager!"
