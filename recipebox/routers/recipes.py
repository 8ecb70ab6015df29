"""Recipe pages.

Endpoints:
- GET /recipes                - List the caller's recipes
- GET/POST /recipes/new       - Creation form / create with optional image
- GET /recipes/{id}           - Show any recipe (no login needed)
- GET/POST /recipes/{id}/edit - Edit form / update with optional new image
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import RedirectResponse

from ..context import CallerIdentity
from ..deps import get_recipes, limit_upload_size, optional_identity, require_identity
from ..services.recipes import RecipeRepository
from ..views import render

router = APIRouter()


@router.get("/recipes")
def list_recipes(
    request: Request,
    identity: CallerIdentity = Depends(require_identity),
    recipes: RecipeRepository = Depends(get_recipes),
):
    return render(request, "recipes", identity, recipes.list(identity.user_id))


@router.get("/recipes/new")
def new_recipe_form(request: Request, identity: CallerIdentity = Depends(require_identity)):
    return render(request, "recipe_form", identity)


@router.post("/recipes/new")
def create_recipe(
    title: str = Form(""),
    description: str = Form(""),
    time: str = Form(""),
    image: Optional[UploadFile] = File(None),
    identity: CallerIdentity = Depends(limit_upload_size),
    recipes: RecipeRepository = Depends(get_recipes),
):
    recipe_id = recipes.create(identity.user_id, title, description, time, image)
    return RedirectResponse(f"/recipes/{recipe_id}", status_code=303)


@router.get("/recipes/{recipe_id}")
def show_recipe(
    request: Request,
    recipe_id: int,
    identity: Optional[CallerIdentity] = Depends(optional_identity),
    recipes: RecipeRepository = Depends(get_recipes),
):
    return render(request, "recipe_detail", identity, recipes.get(recipe_id))


@router.get("/recipes/{recipe_id}/edit")
def edit_recipe_form(
    request: Request,
    recipe_id: int,
    identity: CallerIdentity = Depends(require_identity),
    recipes: RecipeRepository = Depends(get_recipes),
):
    return render(request, "recipe_edit", identity, recipes.get(recipe_id))


@router.post("/recipes/{recipe_id}/edit")
def update_recipe(
    recipe_id: int,
    title: str = Form(""),
    description: str = Form(""),
    time: str = Form(""),
    image: Optional[UploadFile] = File(None),
    identity: CallerIdentity = Depends(limit_upload_size),
    recipes: RecipeRepository = Depends(get_recipes),
):
    recipes.update(recipe_id, title, description, time, image)
    return RedirectResponse(f"/recipes/{recipe_id}", status_code=303)
