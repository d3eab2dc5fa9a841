"""Tests for note search by title, content, tags and all three."""

import pytest

from notevault.exceptions import ValidationError
from notevault.services.note_service import NoteService
from notevault.services.search_service import SearchService


@pytest.fixture()
def search(db):
    return SearchService(db)


@pytest.fixture()
def corpus(db, user):
    notes = NoteService(db)
    uid = user.user_id
    return {
        "recipe": notes.create_note(uid, "Pasta Recipe", "---\ntags: cooking, italian\n---\nBoil water."),
        "diary": notes.create_note(uid, "Diary", "Today I cooked pasta and felt great."),
        "budget": notes.create_note(uid, "Budget 100%", "---\ntags: finance\n---\nSpend less_than income."),
    }


def _ids(results):
    return {r["noteid"] for r in results}


class TestSearchTypes:

    def test_title_is_case_insensitive(self, search, user, corpus):
        assert _ids(search.search_notes(user.user_id, "pasta", "title")) == {corpus["recipe"]}

    def test_content(self, search, user, corpus):
        assert _ids(search.search_notes(user.user_id, "PASTA", "content")) == {corpus["diary"]}

    def test_tags_exact_match(self, search, user, corpus):
        assert _ids(search.search_notes(user.user_id, "Cooking", "tags")) == {corpus["recipe"]}
        assert search.search_notes(user.user_id, "cook", "tags") == []

    def test_title_substring_mid_word(self, db, search, user):
        note_id = NoteService(db).create_note(user.user_id, "the Foo bar", "")
        assert _ids(search.search_notes(user.user_id, "Foo", "title")) == {note_id}
        assert search.search_notes(user.user_id, "", "all") == []

    def test_all_unions_fields(self, search, user, corpus):
        assert _ids(search.search_notes(user.user_id, "pasta")) == {corpus["recipe"], corpus["diary"]}

    def test_all_matches_tag_substring(self, search, user, corpus):
        assert _ids(search.search_notes(user.user_id, "ital", "all")) == {corpus["recipe"]}

    def test_note_returned_once_when_several_fields_match(self, db, search, user):
        note_id = NoteService(db).create_note(
            user.user_id, "apple", "---\ntags: apple, apple-pie\n---\napple apple"
        )
        results = search.search_notes(user.user_id, "apple")
        assert [r["noteid"] for r in results] == [note_id]

    def test_unknown_type_rejected(self, search, user):
        with pytest.raises(ValidationError):
            search.search_notes(user.user_id, "x", "body")

    def test_blank_query_returns_nothing(self, search, user, corpus):
        assert search.search_notes(user.user_id, "   ") == []


class TestSearchSafety:

    def test_wildcards_are_literal(self, search, user, corpus):
        assert _ids(search.search_notes(user.user_id, "100%", "title")) == {corpus["budget"]}
        assert search.search_notes(user.user_id, "%", "content") == []
        assert _ids(search.search_notes(user.user_id, "less_than", "content")) == {corpus["budget"]}
        assert search.search_notes(user.user_id, "less_", "title") == []

    def test_quotes_are_data(self, db, search, user):
        note_id = NoteService(db).create_note(user.user_id, "O'Brien \"quoted\"", "")
        assert _ids(search.search_notes(user.user_id, "o'brien", "title")) == {note_id}

    def test_scoped_to_user(self, search, make_user, corpus):
        other = make_user("mallory")
        assert search.search_notes(other.user_id, "pasta") == []


class TestSearchResults:

    def test_result_shape(self, search, user, corpus):
        result = search.search_notes(user.user_id, "Budget", "title")[0]
        assert result["title"] == "Budget 100%"
        assert result["folderid"] is None
        assert result["tags"] == ["finance"]
        assert result["preview"].endswith("...")
        assert result["updated_at"] is not None

    def test_content_preview_centers_on_match(self, db, search, user):
        content = "x" * 200 + " needle " + "y" * 200
        NoteService(db).create_note(user.user_id, "Haystack", content)
        preview = search.search_notes(user.user_id, "needle", "content")[0]["preview"]
        assert preview.startswith("...")
        assert "needle" in preview

    def test_most_recent_first(self, db, search, user, corpus):
        NoteService(db).update_note(corpus["recipe"], "Pasta Recipe", "pasta again")
        results = search.search_notes(user.user_id, "pasta")
        assert results[0]["noteid"] == corpus["recipe"]
