"""RecipeBox: personal recipe entries with optional images."""
