"""Tests for the folder tree: creation, cycle-safe moves, paths and cascades."""

import threading

import pytest

from notevault.core.config import settings
from notevault.exceptions import IntegrityViolationError, ValidationError
from notevault.models import Folder, Note, ROOT_FOLDER_ID
from notevault.services.folder_service import FolderService, normalize_folder_id
from notevault.services.note_service import NoteService


@pytest.fixture()
def folders(db):
    return FolderService(db)


@pytest.fixture()
def tree(folders, user):
    """A/B/C under the top level, plus a sibling D."""
    uid = user.user_id
    a = folders.create_folder(uid, "A")
    b = folders.create_folder(uid, "B", a)
    c = folders.create_folder(uid, "C", b)
    d = folders.create_folder(uid, "D")
    return {"A": a, "B": b, "C": c, "D": d}


class TestNormalizeFolderId:

    def test_root_and_none_are_top_level(self):
        assert normalize_folder_id(None) is None
        assert normalize_folder_id(ROOT_FOLDER_ID) is None
        assert normalize_folder_id(7) == 7


class TestCreateFolder:

    def test_top_level_folder_has_null_parent(self, db, folders, user):
        folder_id = folders.create_folder(user.user_id, "Work", None)
        folder = db.query(Folder).filter(Folder.folder_id == folder_id).one()
        assert folder.parent_id is None
        assert folder.updated_at == folder.created_at

    def test_root_parent_means_top_level(self, db, folders, user):
        folder_id = folders.create_folder(user.user_id, "Work", ROOT_FOLDER_ID)
        assert folders.get_folder(folder_id, user.user_id).parent_id is None

    def test_name_is_trimmed(self, folders, user):
        folder_id = folders.create_folder(user.user_id, "  Spaced  ")
        assert folders.get_folder(folder_id, user.user_id).name == "Spaced"

    def test_blank_name_rejected(self, folders, user):
        with pytest.raises(ValidationError):
            folders.create_folder(user.user_id, "   ")

    def test_foreign_parent_rejected(self, folders, user, make_user):
        other = make_user("mallory")
        theirs = folders.create_folder(other.user_id, "Theirs")
        with pytest.raises(IntegrityViolationError):
            folders.create_folder(user.user_id, "Mine", theirs)

    def test_missing_parent_rejected(self, folders, user):
        with pytest.raises(IntegrityViolationError):
            folders.create_folder(user.user_id, "Mine", 4242)

    def test_nesting_past_depth_limit_rejected(self, db, folders, user, tree, monkeypatch):
        monkeypatch.setattr(settings, "max_folder_depth", 3)
        with pytest.raises(IntegrityViolationError):
            folders.create_folder(user.user_id, "Too deep", tree["C"])
        assert db.query(Folder).filter(Folder.name == "Too deep").count() == 0
        assert folders.get_folder_path(tree["C"]) == "A/B/C"
        assert folders.create_folder(user.user_id, "Fits", tree["B"]) is not None


class TestMoveFolder:

    def test_move_into_sibling(self, folders, user, tree):
        assert folders.move_folder(tree["D"], user.user_id, tree["A"]) is True
        assert folders.get_folder(tree["D"], user.user_id).parent_id == tree["A"]

    def test_move_to_top_level(self, folders, user, tree):
        assert folders.move_folder(tree["C"], user.user_id, None) is True
        assert folders.get_folder(tree["C"], user.user_id).parent_id is None

    def test_move_into_itself_refused(self, folders, user, tree):
        assert folders.move_folder(tree["A"], user.user_id, tree["A"]) is False

    def test_move_into_descendant_refused(self, folders, user, tree):
        assert folders.move_folder(tree["A"], user.user_id, tree["C"]) is False
        assert folders.get_folder(tree["A"], user.user_id).parent_id is None

    def test_move_root_refused(self, folders, user, tree):
        assert folders.move_folder(ROOT_FOLDER_ID, user.user_id, tree["A"]) is False

    def test_move_foreign_folder_refused(self, folders, user, make_user, tree):
        other = make_user("mallory")
        assert folders.move_folder(tree["D"], other.user_id, None) is False

    def test_move_into_foreign_folder_refused(self, folders, user, make_user, tree):
        other = make_user("mallory")
        theirs = folders.create_folder(other.user_id, "Theirs")
        assert folders.move_folder(tree["D"], user.user_id, theirs) is False

    def test_corrupted_chain_treated_as_cycle(self, db, folders, user, tree):
        # Hand-craft a loop between two folders the API could never produce.
        db.query(Folder).filter(Folder.folder_id == tree["A"]).update({"parent_id": tree["C"]})
        db.commit()
        assert folders.move_folder(tree["D"], user.user_id, tree["B"]) is False

    def test_move_counts_depth_of_moved_subtree(self, folders, user, tree, monkeypatch):
        uid = user.user_id
        e = folders.create_folder(uid, "E")
        f = folders.create_folder(uid, "F", e)
        monkeypatch.setattr(settings, "max_folder_depth", 3)

        assert folders.move_folder(e, uid, tree["B"]) is False
        assert folders.get_folder(e, uid).parent_id is None

        assert folders.move_folder(e, uid, tree["A"]) is True
        assert folders.get_folder_path(f) == "A/E/F"


class TestConcurrentMoves:

    def test_crossing_moves_cannot_form_cycle(self, store, db, folders, user):
        uid = user.user_id
        a = folders.create_folder(uid, "A")
        b = folders.create_folder(uid, "B")
        outcome = {}

        def move_b_under_a():
            other = store.session()
            try:
                outcome["moved"] = FolderService(other).move_folder(b, uid, a)
            finally:
                other.close()

        with db.transaction():
            worker = threading.Thread(target=move_b_under_a)
            worker.start()
            worker.join(timeout=0.2)
            # Blocked on the write lock until this scope commits.
            assert worker.is_alive()
            assert folders.move_folder(a, uid, b) is True
        worker.join(timeout=5)

        assert outcome == {"moved": False}
        assert folders.get_folder(a, uid).parent_id == b
        assert folders.get_folder(b, uid).parent_id is None


class TestRenameAndDelete:

    def test_rename_updates_name(self, folders, user, tree):
        assert folders.rename_folder(tree["A"], user.user_id, "Alpha") is True
        assert folders.get_folder(tree["A"], user.user_id).name == "Alpha"

    def test_rename_blank_rejected(self, folders, user, tree):
        with pytest.raises(ValidationError):
            folders.rename_folder(tree["A"], user.user_id, " ")

    def test_rename_root_refused(self, folders, user, tree):
        assert folders.rename_folder(ROOT_FOLDER_ID, user.user_id, "Mine") is False

    def test_rename_foreign_refused(self, folders, make_user, tree):
        other = make_user("mallory")
        assert folders.rename_folder(tree["A"], other.user_id, "Stolen") is False

    def test_delete_cascades_to_subtree_and_notes(self, db, folders, user, tree):
        notes = NoteService(db)
        deep_note = notes.create_note(user.user_id, "Deep", "---\ntags: x\n---\n", tree["C"])
        kept_note = notes.create_note(user.user_id, "Kept", "", tree["D"])

        assert folders.delete_folder(tree["A"], user.user_id) is True

        remaining = {f.folder_id for f in folders.get_folders_by_user(user.user_id)}
        assert remaining == {tree["D"]}
        assert db.query(Note).filter(Note.note_id == deep_note).first() is None
        assert notes.get_note_tags(deep_note) == []
        assert notes.get_recent_modified_files(user.user_id)[0]["noteid"] == kept_note

    def test_delete_root_refused(self, db, folders, user):
        assert folders.delete_folder(ROOT_FOLDER_ID, user.user_id) is False
        assert db.query(Folder).filter(Folder.folder_id == ROOT_FOLDER_ID).count() == 1

    def test_delete_missing_returns_false(self, folders, user):
        assert folders.delete_folder(4242, user.user_id) is False


class TestPaths:

    def test_folder_path(self, folders, user, tree):
        assert folders.get_folder_path(tree["C"], user.user_id) == "A/B/C"
        assert folders.get_folder_path(tree["A"]) == "A"

    def test_path_of_top_level_is_empty(self, folders, user):
        assert folders.get_folder_path(None) == ""
        assert folders.get_folder_path(ROOT_FOLDER_ID) == ""

    def test_breadcrumbs_top_down(self, folders, user, tree):
        assert folders.get_status_folder_path(tree["C"], user.user_id) == [
            {"id": tree["A"], "name": "A"},
            {"id": tree["B"], "name": "B"},
            {"id": tree["C"], "name": "C"},
        ]

    def test_breadcrumbs_of_foreign_folder_empty(self, folders, make_user, tree):
        other = make_user("mallory")
        assert folders.get_status_folder_path(tree["C"], other.user_id) == []

    def test_path_follows_move(self, folders, user, tree):
        folders.move_folder(tree["C"], user.user_id, tree["D"])
        assert folders.get_folder_path(tree["C"]) == "D/C"


class TestListing:

    def test_top_level_contents_exclude_root(self, db, folders, user, tree):
        NoteService(db).create_note(user.user_id, "Loose", "", None)
        contents = folders.get_folder_contents(user.user_id, None)
        assert [(c["type"], c["name"]) for c in contents] == [
            ("folder", "A"), ("folder", "D"), ("note", "Loose"),
        ]

    def test_root_id_lists_top_level(self, folders, user, tree):
        by_root = folders.get_folder_contents(user.user_id, ROOT_FOLDER_ID)
        by_none = folders.get_folder_contents(user.user_id, None)
        assert by_root == by_none

    def test_contents_scoped_to_owner(self, folders, make_user, tree):
        other = make_user("mallory")
        assert folders.get_folder_contents(other.user_id, None) == []
        assert folders.get_folder_contents(other.user_id, tree["A"]) == []

    def test_folders_by_parent_sorted_by_name(self, folders, user):
        for name in ("beta", "Alpha", "gamma"):
            folders.create_folder(user.user_id, name)
        names = [f.name for f in folders.get_folders_by_parent(user.user_id, None)]
        assert names == sorted(names)
        assert len(names) == 3

    def test_folders_by_user_excludes_root(self, folders, user, tree):
        ids = {f.folder_id for f in folders.get_folders_by_user(user.user_id)}
        assert ROOT_FOLDER_ID not in ids
        assert ids == set(tree.values())


class TestScenario:

    def test_work_plan_scenario(self, db, folders, user):
        notes = NoteService(db)
        work = folders.create_folder(user.user_id, "Work", None)
        plan = notes.create_note(user.user_id, "Plan", "--- \ntags: urgent\n---\nBody", work)

        contents = folders.get_folder_contents(user.user_id, work)
        assert len(contents) == 1
        assert contents[0]["type"] == "note"
        assert contents[0]["name"] == "Plan"
        assert notes.get_note_tags(plan) == ["urgent"]
        assert folders.move_folder(work, user.user_id, work) is False
