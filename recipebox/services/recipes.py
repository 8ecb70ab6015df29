"""Recipe persistence.

``get`` and ``update`` look recipes up by id alone and do not compare the
owner with the caller. Reads are public and edits trust any logged-in user;
see DESIGN.md before tightening this.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFound, PersistenceFailure
from ..models import Recipe
from .uploads import UploadHandler

logger = logging.getLogger("recipebox.recipes")


class RecipeRepository:
    def __init__(self, db: Session, uploads: UploadHandler):
        self.db = db
        self.uploads = uploads

    def create(
        self,
        owner_id: int,
        title: str,
        description: str,
        time: str,
        image: Optional[UploadFile] = None,
    ) -> int:
        """Insert a recipe and attach its image in one transaction.

        The row is flushed to get its id, the image is stored under that id,
        then everything commits together. On failure the row is rolled back
        and the stored file removed.
        """
        stored = None
        try:
            recipe = Recipe(
                title=title,
                description=description,
                time=time,
                user_id=owner_id,
            )
            self.db.add(recipe)
            self.db.flush()
            recipe_id = recipe.id

            stored = self.uploads.ingest(image, recipe_id)
            if stored:
                recipe.image_path = stored

            self.db.commit()
        except SQLAlchemyError as e:
            self._abort(stored)
            raise PersistenceFailure(str(e))
        except Exception:
            self._abort(stored)
            raise

        logger.info(f"User {owner_id} created recipe {recipe_id}")
        return recipe_id

    def list(self, owner_id: int) -> list[Recipe]:
        try:
            return (
                self.db.query(Recipe)
                .filter(Recipe.user_id == owner_id)
                .order_by(Recipe.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise PersistenceFailure(str(e))

    def get(self, recipe_id: int) -> Recipe:
        try:
            recipe = self.db.get(Recipe, recipe_id)
        except SQLAlchemyError as e:
            raise PersistenceFailure(str(e))
        if recipe is None:
            raise NotFound("Recipe not found")
        return recipe

    def update(
        self,
        recipe_id: int,
        title: str,
        description: str,
        time: str,
        image: Optional[UploadFile] = None,
    ) -> None:
        """Overwrite text fields; replace the image only when a new one is attached."""
        recipe = self.get(recipe_id)
        previous = recipe.image_path

        stored = None
        try:
            stored = self.uploads.ingest(image, recipe.id)
            recipe.title = title
            recipe.description = description
            recipe.time = time
            if stored:
                recipe.image_path = stored
            self.db.commit()
        except SQLAlchemyError as e:
            self._abort(stored)
            raise PersistenceFailure(str(e))
        except Exception:
            self._abort(stored)
            raise

        if stored and previous and previous != stored:
            self.uploads.discard(previous)
        logger.info(f"Updated recipe {recipe_id}")

    def image_paths(self) -> list[str]:
        try:
            rows = self.db.query(Recipe.image_path).filter(Recipe.image_path.isnot(None)).all()
        except SQLAlchemyError as e:
            raise PersistenceFailure(str(e))
        return [r[0] for r in rows]

    def _abort(self, stored: Optional[str]) -> None:
        self.db.rollback()
        if stored:
            self.uploads.discard(stored)
