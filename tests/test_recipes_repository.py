"""Tests for the recipe repository.

Tests cover:
- Create with and without an image
- Owner-scoped listing
- Unscoped get / update
- Image preservation and replacement on update
- Rollback and file cleanup when a write fails
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import Text
from sqlalchemy.exc import OperationalError

from recipebox.errors import MalformedUpload, NotFound, PersistenceFailure
from recipebox.models import Recipe


@pytest.fixture
def alice(credentials):
    return credentials.register("alice", "secret")


@pytest.fixture
def bob(credentials):
    return credentials.register("bob", "hunter2")


def stored_files(context):
    return list(context.uploads.storage.keys())


def test_create_without_image_has_null_path(repo, alice):
    recipe_id = repo.create(alice, "Tea", "quick", "5m")
    recipe = repo.get(recipe_id)
    assert recipe.title == "Tea"
    assert recipe.description == "quick"
    assert recipe.time == "5m"
    assert recipe.image_path is None
    assert recipe.user_id == alice


def test_create_with_image_path_contains_id_and_filename(repo, alice, context, make_upload):
    recipe_id = repo.create(alice, "Tea", "quick", "5m", make_upload("tea.png"))
    recipe = repo.get(recipe_id)

    assert recipe.image_path.startswith(f"/uploads/images/{recipe_id}_")
    assert recipe.image_path.endswith("tea.png")
    key = context.uploads.storage.key_for(recipe.image_path)
    assert (Path(context.uploads.storage.root) / key).exists()


@pytest.mark.parametrize("filename", ["My Photo.jpg", "café.jpg"])
def test_image_path_keeps_original_filename(repo, alice, make_upload, filename):
    recipe_id = repo.create(alice, "Tea", "", "", make_upload(filename))
    image_path = repo.get(recipe_id).image_path
    assert image_path.startswith(f"/uploads/images/{recipe_id}_")
    assert filename in image_path


def test_long_text_fields_are_stored_whole(repo, alice):
    title = "Slow-roasted " * 40
    time = "overnight, then " * 10
    recipe_id = repo.create(alice, title, "", time)
    recipe = repo.get(recipe_id)
    assert recipe.title == title
    assert recipe.time == time


@pytest.mark.parametrize("column", ["title", "description", "time", "image_path"])
def test_recipe_text_columns_are_unbounded(column):
    assert isinstance(Recipe.__table__.c[column].type, Text)


def test_ids_are_assigned_in_ascending_order(repo, alice):
    first = repo.create(alice, "One", "", "")
    second = repo.create(alice, "Two", "", "")
    assert second > first


def test_list_is_owner_scoped_and_ordered(repo, alice, bob):
    created = []
    for i in range(3):
        created.append(("alice", repo.create(alice, f"A{i}", "", "")))
        created.append(("bob", repo.create(bob, f"B{i}", "", "")))

    alice_list = repo.list(alice)
    bob_list = repo.list(bob)

    assert [r.id for r in alice_list] == [rid for who, rid in created if who == "alice"]
    assert [r.id for r in bob_list] == [rid for who, rid in created if who == "bob"]
    assert all(r.user_id == alice for r in alice_list)
    assert all(r.user_id == bob for r in bob_list)


def test_list_for_user_without_recipes_is_empty(repo, alice, bob):
    repo.create(alice, "Tea", "", "")
    assert repo.list(bob) == []


def test_get_missing_recipe_is_not_found(repo):
    with pytest.raises(NotFound):
        repo.get(404)


def test_get_is_not_owner_scoped(repo, alice, bob):
    recipe_id = repo.create(alice, "Tea", "", "")
    # Any caller can read by id
    assert repo.get(recipe_id).user_id == alice


def test_update_without_image_preserves_path(repo, alice, make_upload):
    recipe_id = repo.create(alice, "Tea", "quick", "5m", make_upload("tea.png"))
    before = repo.get(recipe_id).image_path

    repo.update(recipe_id, "Green tea", "slower", "7m")

    recipe = repo.get(recipe_id)
    assert recipe.title == "Green tea"
    assert recipe.description == "slower"
    assert recipe.time == "7m"
    assert recipe.image_path == before


def test_update_with_image_replaces_path_and_old_file(repo, alice, context, make_upload):
    recipe_id = repo.create(alice, "Tea", "", "", make_upload("tea.png"))
    before = repo.get(recipe_id).image_path

    repo.update(recipe_id, "Tea", "", "", make_upload("better.jpg", b"new"))

    after = repo.get(recipe_id).image_path
    assert after != before
    assert after.endswith("better.jpg")
    assert stored_files(context) == [context.uploads.storage.key_for(after)]


def test_update_missing_recipe_is_not_found_and_writes_nothing(repo, context, make_upload):
    with pytest.raises(NotFound):
        repo.update(99, "x", "y", "z", make_upload())
    assert stored_files(context) == []


def test_update_does_not_check_owner(repo, alice, bob):
    recipe_id = repo.create(alice, "Tea", "", "")
    # The repository has no notion of the caller; bob's edit goes through
    repo.update(recipe_id, "Bob's tea", "", "")
    recipe = repo.get(recipe_id)
    assert recipe.title == "Bob's tea"
    assert recipe.user_id == alice


def test_failed_upload_rolls_back_create(repo, alice, db_session, make_upload):
    with pytest.raises(MalformedUpload):
        repo.create(alice, "Huge", "", "", make_upload("big.png", b"x" * 4096))
    assert db_session.query(Recipe).count() == 0


def test_failed_commit_rolls_back_create_and_removes_file(repo, alice, db_session, context, make_upload):
    error = OperationalError("INSERT", {}, Exception("database is gone"))
    with patch.object(db_session, "commit", side_effect=error):
        with pytest.raises(PersistenceFailure) as exc_info:
            repo.create(alice, "Tea", "", "", make_upload())

    assert "database is gone" in exc_info.value.message
    assert db_session.query(Recipe).count() == 0
    assert stored_files(context) == []


def test_failed_commit_on_update_keeps_old_image(repo, alice, db_session, context, make_upload):
    recipe_id = repo.create(alice, "Tea", "", "", make_upload("tea.png"))
    before = repo.get(recipe_id).image_path

    error = OperationalError("UPDATE", {}, Exception("database is gone"))
    with patch.object(db_session, "commit", side_effect=error):
        with pytest.raises(PersistenceFailure):
            repo.update(recipe_id, "New", "", "", make_upload("new.png"))

    recipe = repo.get(recipe_id)
    assert recipe.title == "Tea"
    assert recipe.image_path == before
    assert stored_files(context) == [context.uploads.storage.key_for(before)]


def test_image_paths_lists_referenced_images(repo, alice, make_upload):
    with_image = repo.create(alice, "Tea", "", "", make_upload())
    repo.create(alice, "Toast", "", "")
    assert repo.image_paths() == [repo.get(with_image).image_path]
