"""Tests for the bootstrap value types."""

import pytest
from pydantic import ValidationError

from popcode_bootstrap.models import (
    DEFAULT_HTML,
    BootstrapQuery,
    IdentityCredential,
    ImportedSourceBundle,
    Project,
    RepoRef,
    parse_query_params,
)


class TestParseQueryParams:
    def test_first_value_wins(self):
        assert parse_query_params("?gist=a&gist=b&user=x") == {"gist": "a", "user": "x"}

    def test_empty(self):
        assert parse_query_params("") == {}


class TestBootstrapQuery:
    """Tests for BootstrapQuery."""

    def test_gist_only(self):
        query = BootstrapQuery.from_query_string("?gist=abc123")

        assert query.has_gist
        assert not query.has_repo
        assert query.repo is None

    def test_repo_only(self):
        query = BootstrapQuery.from_query_string("user=octocat&repo=hello")

        assert query.has_repo
        assert not query.has_gist
        assert query.repo == RepoRef(owner="octocat", name="hello")

    def test_both(self):
        query = BootstrapQuery.from_query_string("gist=abc&user=octocat&repo=hello")
        assert query.has_gist and query.has_repo

    def test_neither(self):
        query = BootstrapQuery.from_query_string("")
        assert not query.has_gist and not query.has_repo

    @pytest.mark.parametrize(
        "params",
        [
            {"user": "octocat"},
            {"repo": "hello"},
            {"user": "  ", "repo": "hello"},
        ],
    )
    def test_incomplete_repo_is_dropped(self, params):
        assert not BootstrapQuery.from_params(params).has_repo

    def test_blank_gist_is_absent(self):
        assert not BootstrapQuery.from_params({"gist": "   "}).has_gist

    def test_values_are_trimmed(self):
        query = BootstrapQuery.from_params({"gist": " abc "})
        assert query.gist_id == "abc"

    def test_blank_fields_are_absent_when_constructed_directly(self):
        query = BootstrapQuery(gist_id=" ", repo_owner="", repo_name="  ")

        assert query.gist_id is None
        assert not query.has_gist
        assert not query.has_repo
        assert query.repo is None

    def test_owner_without_name_is_invalid(self):
        with pytest.raises(ValidationError):
            BootstrapQuery(repo_owner="octocat")

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValidationError):
            BootstrapQuery(branch="main")


class TestValues:
    def test_repo_ref_str(self):
        assert str(RepoRef(owner="octocat", name="hello")) == "octocat/hello"

    def test_repo_ref_requires_both_parts(self):
        with pytest.raises(ValidationError):
            RepoRef(owner="", name="hello")

    def test_github_token(self):
        credential = IdentityCredential(user_id="1", access_tokens={"github.com": "t"})
        assert credential.github_token == "t"

    def test_bundle_equality_is_by_value(self):
        assert ImportedSourceBundle(javascript="X") == ImportedSourceBundle(javascript="X")

    def test_empty_project(self):
        project = Project.empty()
        assert project.sources.html == DEFAULT_HTML
        assert project.enabled_libraries == ()

    def test_project_from_bundle(self):
        repo = RepoRef(owner="octocat", name="hello")
        project = Project.from_bundle(
            ImportedSourceBundle(css="p {}", enabled_libraries=("jquery",)), repo=repo
        )

        assert project.sources.css == "p {}"
        assert project.enabled_libraries == ("jquery",)
        assert project.repo == repo
        assert Project.empty().project_key != project.project_key
