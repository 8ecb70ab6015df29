"""JSON API.

Endpoints:
- GET /api/ready             - Liveness plus database ping
- GET /api/recipes           - Caller's recipes
- GET /api/recipes/{id}      - Any recipe by id
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..context import CallerIdentity
from ..deps import get_db, get_recipes, require_identity
from ..schemas import ReadyOut, RecipeOut
from ..services.recipes import RecipeRepository

router = APIRouter()
logger = logging.getLogger("recipebox.api")


@router.get("/ready", response_model=ReadyOut)
def ready(db: Session = Depends(get_db)):
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning(f"Database ping failed: {e}")
    return ReadyOut(ok=True, db_ok=db_ok)


@router.get("/recipes", response_model=list[RecipeOut])
def list_recipes(
    identity: CallerIdentity = Depends(require_identity),
    recipes: RecipeRepository = Depends(get_recipes),
):
    return recipes.list(identity.user_id)


@router.get("/recipes/{recipe_id}", response_model=RecipeOut)
def get_recipe(recipe_id: int, recipes: RecipeRepository = Depends(get_recipes)):
    return recipes.get(recipe_id)
