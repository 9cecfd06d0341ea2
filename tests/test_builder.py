"""Tests for build_query: filters, matches, search and sort applied to a Select."""

from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from fastapi_advanced_filters import (
    FilterConfig,
    FilterError,
    FilterRequest,
    MalformedFilterPayloadError,
    Repository,
    SortDefinition,
    SortDirection,
    UnknownFilterError,
    UnknownSortError,
    ValidationError,
    advanced_filter,
    boolean_filter,
    build_query,
    encode_filters,
)

from conftest import Post, ids


def params(filters=None, sort=None, search=None):
    if filters is not None:
        filters = encode_filters(FilterRequest(key, value) for key, value in filters)
    return SimpleNamespace(filters=filters, sort=sort, search=search)


class TestFilters:
    def test_ready_posts_sorted_descending(self, session, repository, applied):
        stmt = build_query(repository, params([("ready-posts", None)], sort="-id"))
        assert ids(session, stmt) == [3, 1]
        assert applied == ["ready-posts"]

    def test_no_parameters_returns_plain_select(self, session, repository):
        stmt = build_query(repository, params())
        assert sorted(ids(session, stmt)) == [1, 2, 3, 4]

    def test_uses_given_statement(self, session, repository):
        stmt = build_query(repository, params(sort="id"), stmt=select(Post).where(Post.user_id == 2))
        assert ids(session, stmt) == [3, 4]

    def test_unknown_filter_fails_before_applying(self, repository, applied):
        with pytest.raises(UnknownFilterError):
            build_query(repository, params([("ready-posts", None), ("missing", None)]))
        assert applied == []

    def test_malformed_payload(self, repository):
        with pytest.raises(MalformedFilterPayloadError):
            build_query(repository, SimpleNamespace(filters="%%%", sort=None, search=None))

    def test_unauthorized_filter_is_a_noop(self, session, repository, applied):
        stmt = build_query(repository, params([("admin-only", None)], sort="id"), context="guest")
        assert ids(session, stmt) == [1, 2, 3, 4]
        assert applied == []

    def test_authorized_filter_applies(self, session, repository, applied):
        stmt = build_query(repository, params([("admin-only", None)]), context="admin")
        assert ids(session, stmt) == [1]
        assert applied == ["admin-only"]

    def test_invalid_payload_applies_nothing(self, repository, applied):
        with pytest.raises(ValidationError) as exc:
            build_query(repository, params([("ready-posts", None), ("min-views", {"views": "lots"})]))
        assert list(exc.value.errors) == ["min-views.views"]
        assert applied == []

    def test_same_filter_twice_applies_twice(self, session, repository, applied):
        stmt = build_query(repository, params([("min-views", {"views": 1}), ("min-views", {"views": 5})], sort="id"))
        assert ids(session, stmt) == [1, 3]
        assert applied == ["min-views", "min-views"]

    def test_filters_apply_in_client_order(self, repository, applied):
        build_query(repository, params([("min-views", {"views": 1}), ("ready-posts", None)]))
        assert applied == ["min-views", "ready-posts"]

    def test_boolean_filter_value_reaches_apply(self, session):
        seen = []

        def active(stmt, value):
            seen.append(value.input("is_active"))
            return stmt.where(Post.is_active.is_(value.input("is_active")))

        repository = Repository(Post, filters=[boolean_filter("active-boolean-filter", {"Is Active": "is_active"}, apply=active)])
        stmt = build_query(repository, params([("active-boolean-filter", {"is_active": True})], sort=None))
        assert seen == [True]
        assert sorted(ids(session, stmt)) == [1, 2, 3]

    def test_rules_hand_validated_values_to_apply(self):
        seen = []

        def min_views(stmt, value):
            seen.append(value.input("views"))
            return stmt

        repository = Repository(Post, filters=[advanced_filter("min-views", min_views, rules={"views": int})])
        build_query(repository, params([("min-views", {"views": "3", "note": "kept"})]))
        assert seen == [3]

    def test_missing_nested_value_uses_default(self, session):
        seen = []

        def activation(stmt, value):
            seen.append(value.input("activation.active", False))
            return stmt

        repository = Repository(Post, filters=[advanced_filter("activation", activation)])
        build_query(repository, params([("activation", {})]))
        assert seen == [False]

    def test_default_boolean_apply(self, session, repository):
        stmt = build_query(repository, params([("flags", {"is_featured": True})]))
        assert ids(session, stmt) == [1]

        stmt = build_query(repository, params([("flags", {"is_active": False})]))
        assert ids(session, stmt) == [4]

    def test_boolean_without_flags_is_a_noop(self, session, repository):
        stmt = build_query(repository, params([("flags", {})]))
        assert sorted(ids(session, stmt)) == [1, 2, 3, 4]

    def test_select_filter(self, session, repository):
        assert ids(session, build_query(repository, params([("status", "Draft")]))) == [2]
        assert ids(session, build_query(repository, params([("status", "published")], sort="id"))) == [1, 3]

    def test_select_filter_rejects_unknown_option(self, repository):
        with pytest.raises(ValidationError) as exc:
            build_query(repository, params([("status", "deleted")]))
        assert list(exc.value.errors) == ["status.value"]

    def test_timestamp_filter_whole_day(self, session, repository):
        assert ids(session, build_query(repository, params([("published-on", "2024-05-01")]))) == [1]

    def test_timestamp_filter_after_day(self, session, repository):
        assert ids(session, build_query(repository, params([("published-after", "2024-05-01")]))) == [3]

    def test_timestamp_filter_after_datetime(self, session, repository):
        stmt = build_query(repository, params([("published-after", "2024-05-01T09:00:00")], sort="id"))
        assert ids(session, stmt) == [1, 3]

    def test_timestamp_filter_invalid(self, repository):
        with pytest.raises(ValidationError):
            build_query(repository, params([("published-on", "someday")]))


class TestSort:
    def test_ascending(self, session, repository):
        assert ids(session, build_query(repository, params(sort="title"))) == [4, 2, 1, 3]
        assert ids(session, build_query(repository, params(sort="+title"))) == [4, 2, 1, 3]

    def test_relation_sort(self, session, repository):
        stmt = build_query(repository, params(sort="-user.attributes.name"))
        assert "LEFT OUTER JOIN users" in str(stmt)
        assert set(ids(session, stmt)[:2]) == {3, 4}

    def test_unknown_sort(self, repository, applied):
        with pytest.raises(UnknownSortError):
            build_query(repository, params([("ready-posts", None)], sort="views"))
        assert applied == []

    def test_transform_takes_precedence(self, session):
        calls = []

        def by_title_length(stmt, direction):
            calls.append(direction)
            length = func.length(Post.title)
            return stmt.order_by(length.desc() if direction == SortDirection.DESC else length.asc())

        repository = Repository(Post, sorts=[SortDefinition("title", transform=by_title_length)])
        stmt = build_query(repository, params(sort="-title"))
        assert calls == [SortDirection.DESC]
        assert ids(session, stmt)[-1] == 4

    def test_unresolvable_relation(self, repository):
        broken = Repository(Post, sorts=["author.attributes.name"])
        with pytest.raises(FilterError) as exc:
            build_query(broken, params(sort="author.attributes.name"))
        assert exc.value.status_code == 400

    def test_unresolvable_sort_column_applies_nothing(self, applied):
        def ready_posts(stmt, value):
            applied.append("ready-posts")
            return stmt

        broken = Repository(Post, filters=[advanced_filter("ready-posts", ready_posts)], sorts=["nope", "author.attributes.name"])
        with pytest.raises(UnknownSortError):
            build_query(broken, params([("ready-posts", None)], sort="nope"))
        with pytest.raises(FilterError):
            build_query(broken, params([("ready-posts", None)], sort="-author.attributes.name"))
        assert applied == []

    def test_default_sort(self, session, repository):
        stmt = build_query(repository, params(), config=FilterConfig(default_sort="-id"))
        assert ids(session, stmt) == [4, 3, 2, 1]

    def test_requested_sort_beats_default(self, session, repository):
        stmt = build_query(repository, params(sort="id"), config=FilterConfig(default_sort="-id"))
        assert ids(session, stmt) == [1, 2, 3, 4]


class TestMatchesAndSearch:
    def test_equality(self, session, repository):
        stmt = build_query(repository, params(), match_params={"title": "Archived"})
        assert ids(session, stmt) == [4]

    def test_negation(self, session, repository):
        stmt = build_query(repository, params(sort="id"), match_params={"-title": "Archived"})
        assert ids(session, stmt) == [1, 2, 3]

    def test_null(self, session, repository):
        assert ids(session, build_query(repository, params(), match_params={"body": "null"})) == [4]

    def test_bool_and_int(self, session, repository):
        assert ids(session, build_query(repository, params(), match_params={"is_active": "false"})) == [4]
        assert ids(session, build_query(repository, params(), match_params={"id": "3"})) == [3]

    def test_array(self, session, repository):
        stmt = build_query(repository, params(sort="id"), match_params={"user_id": "2,3"})
        assert ids(session, stmt) == [3, 4]

    def test_undeclared_params_are_ignored(self, session, repository):
        stmt = build_query(repository, params(), match_params={"status": "draft", "sort": "id"})
        assert sorted(ids(session, stmt)) == [1, 2, 3, 4]

    def test_invalid_match_value(self, repository, applied):
        with pytest.raises(ValidationError) as exc:
            build_query(repository, params([("ready-posts", None)]), match_params={"id": "abc"})
        assert list(exc.value.errors) == ["id"]
        assert applied == []

    def test_search_strings_case_insensitive(self, session, repository):
        assert ids(session, build_query(repository, params(search="RELEASE"))) == [3]
        assert ids(session, build_query(repository, params(search="not ready"))) == [2]

    def test_search_integer_column(self, session, repository):
        assert ids(session, build_query(repository, params(search="42"))) == [3]

    def test_search_non_ascii_digits(self, session, repository):
        assert ids(session, build_query(repository, params(search="\u00b2"))) == []

    def test_search_without_searchables(self, session):
        stmt = build_query(Repository(Post), params(search="release"))
        assert sorted(ids(session, stmt)) == [1, 2, 3, 4]
