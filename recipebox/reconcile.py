"""Remove uploaded images that no recipe points at.

A crash between writing a file and committing the recipe row, or a failed
cleanup after an image was replaced, leaves files behind. This pass deletes
them.

Usage:
    python -m recipebox.reconcile
"""

import logging

from .context import AppContext
from .main import configure_logging
from .services.recipes import RecipeRepository
from .settings import Settings

logger = logging.getLogger("recipebox.reconcile")


def reconcile_uploads(ctx: AppContext) -> list[str]:
    db = ctx.session_factory()
    try:
        referenced = RecipeRepository(db, ctx.uploads).image_paths()
    finally:
        db.close()
    return ctx.uploads.reconcile(referenced)


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    ctx = AppContext.from_settings(settings)
    removed = reconcile_uploads(ctx)
    for path in removed:
        logger.info(f"Removed {path}")
    logger.info(f"Reconcile complete, {len(removed)} file(s) removed")


if __name__ == "__main__":
    main()
