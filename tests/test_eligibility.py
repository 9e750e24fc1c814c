"""Tests for deploygate.gate.eligibility module."""

import pytest

from deploygate.gate.eligibility import (
    EligibilityContext,
    EligibilityFilter,
    EligibilityReason,
    is_deploy_command,
    resolve_author_ids,
)
from deploygate.lib.types import Actor, Reaction, Review

from conftest import ADMIN, AUTHOR, BOT, MAINTAINER, READER, HEAD_SHA

PERMISSIONS = {"author": "write", "maintainer": "write", "admin": "admin", "reader": "read"}


def make_filter(authors_can_vote=False, permissions=None, lookups=None, **kwargs):
    perms = PERMISSIONS if permissions is None else permissions

    def lookup(login):
        if lookups is not None:
            lookups.append(login)
        return perms.get(login, "none")

    return EligibilityFilter(EligibilityContext(
        token_identity=BOT,
        author_ids=frozenset({AUTHOR.id}),
        authors_can_vote=authors_can_vote,
        permission_lookup=lookup,
        **kwargs,
    ))


def reaction(content, actor, rid=1):
    return Reaction(id=rid, content=content, actor=actor, parent_artifact_id=7)


def review(state, actor, body="", rid=1):
    return Review(id=rid, state=state, body=body, commit_id=HEAD_SHA, actor=actor)


class TestDeployCommand:
    """Tests for is_deploy_command()."""

    @pytest.mark.parametrize("body", [
        "/deploy",
        "/deploy now",
        "/DEPLOY x",
        "  /deploy  ",
        "\t/deploy\n",
        "/deploy\nwith a second line",
    ])
    def test_qualifies(self, body):
        assert is_deploy_command(body) is True

    @pytest.mark.parametrize("body", [
        "please /deploy",
        "deploy this",
        "",
        None,
        "   ",
        "/deployment",
    ])
    def test_does_not_qualify(self, body):
        assert is_deploy_command(body) is False

    def test_custom_command(self):
        assert is_deploy_command("/ship it", "/ship") is True
        assert is_deploy_command("/deploy", "/ship") is False


class TestResolveAuthorIds:
    """Tests for resolve_author_ids()."""

    def test_unions_authors_and_committers(self):
        commits = [
            {"author": {"id": 1}, "committer": {"id": 2}},
            {"author": {"id": 3}, "committer": {"id": 1}},
        ]
        assert resolve_author_ids(commits) == {1, 2, 3}

    def test_drops_null_identities(self):
        commits = [
            {"author": None, "committer": {"id": 5}},
            {"author": {"id": None}},
            {},
        ]
        assert resolve_author_ids(commits) == {5}

    def test_empty(self):
        assert resolve_author_ids([]) == set()


class TestExclusionOrder:
    """The first matching exclusion wins."""

    def test_author_checked_before_permission(self):
        """An author who also lacks permission is reported as an author."""
        f = make_filter(permissions={"author": "read"})
        decision = f.classify(reaction("+1", AUTHOR))
        assert decision.reason == EligibilityReason.EXCLUDED_AUTHOR
        assert decision.accepted is False

    def test_author_check_skips_permission_lookup(self):
        lookups = []
        f = make_filter(lookups=lookups)
        f.classify(reaction("+1", AUTHOR))
        assert lookups == []

    def test_author_allowed_when_authors_can_vote(self):
        f = make_filter(authors_can_vote=True)
        decision = f.classify(reaction("+1", AUTHOR))
        assert decision.reason == EligibilityReason.ACCEPTED_APPROVAL

    def test_token_identity_excluded(self):
        f = make_filter(permissions={"github-actions[bot]": "admin"})
        decision = f.classify(reaction("+1", BOT))
        assert decision.reason == EligibilityReason.EXCLUDED_TOKEN_IDENTITY

    def test_token_identity_compared_by_id(self):
        """A renamed login with the same id is still the token identity."""
        f = make_filter(permissions={"renamed": "admin"})
        decision = f.classify(reaction("+1", Actor(id=BOT.id, login="renamed")))
        assert decision.reason == EligibilityReason.EXCLUDED_TOKEN_IDENTITY

    def test_login_collision_is_not_identity(self):
        """Same login, different id: not the token identity."""
        f = make_filter(permissions={BOT.login: "admin"})
        decision = f.classify(reaction("+1", Actor(id=999, login=BOT.login)))
        assert decision.reason == EligibilityReason.ACCEPTED_APPROVAL

    def test_deleted_account_skips_permission_lookup(self):
        """A review from a deleted account carries no login to look up."""
        lookups = []
        f = make_filter(lookups=lookups)
        decision = f.classify(review("APPROVED", Actor(id=0)))
        assert decision.reason == EligibilityReason.EXCLUDED_NOT_ACTIONABLE
        assert lookups == []

    def test_permission_not_in_allow_set(self):
        f = make_filter()
        decision = f.classify(reaction("+1", READER))
        assert decision.reason == EligibilityReason.EXCLUDED_PERMISSION

    def test_unknown_user_has_no_permission(self):
        f = make_filter()
        decision = f.classify(reaction("+1", Actor(id=9, login="stranger")))
        assert decision.reason == EligibilityReason.EXCLUDED_PERMISSION

    def test_allow_set_is_membership_not_ordering(self):
        """admin isn't implied by write being allowed."""
        f = make_filter(required_permissions=frozenset({"write"}))
        decision = f.classify(reaction("+1", ADMIN))
        assert decision.reason == EligibilityReason.EXCLUDED_PERMISSION


class TestContentClassification:
    """Tests for classification of eligible actors' signals."""

    def test_reject_reaction(self):
        decision = make_filter().classify(reaction("-1", MAINTAINER))
        assert decision.reason == EligibilityReason.ACCEPTED_REJECTION
        assert decision.is_rejection
        assert decision.via == "reaction"

    def test_approve_reaction(self):
        decision = make_filter().classify(reaction("+1", MAINTAINER))
        assert decision.reason == EligibilityReason.ACCEPTED_APPROVAL
        assert decision.is_approval
        assert decision.via == "reaction"

    def test_other_reaction_not_actionable(self):
        decision = make_filter().classify(reaction("heart", MAINTAINER))
        assert decision.reason == EligibilityReason.EXCLUDED_NOT_ACTIONABLE

    def test_custom_vocabulary(self):
        f = make_filter(approve_vote="rocket", reject_vote="confused")
        assert f.classify(reaction("rocket", MAINTAINER)).is_approval
        assert f.classify(reaction("confused", MAINTAINER)).is_rejection
        assert not f.classify(reaction("+1", MAINTAINER)).accepted

    def test_approved_review(self):
        decision = make_filter().classify(review("APPROVED", MAINTAINER))
        assert decision.reason == EligibilityReason.ACCEPTED_APPROVAL
        assert decision.via == "review"

    def test_deploy_command_review(self):
        decision = make_filter().classify(review("COMMENTED", MAINTAINER, body="  /deploy now"))
        assert decision.reason == EligibilityReason.ACCEPTED_DEPLOY_COMMAND
        assert decision.is_approval
        assert decision.via == "comment"

    def test_commented_review_without_command(self):
        decision = make_filter().classify(review("COMMENTED", MAINTAINER, body="looks good, /deploy"))
        assert decision.reason == EligibilityReason.EXCLUDED_NOT_ACTIONABLE

    def test_changes_requested_not_actionable(self):
        decision = make_filter().classify(review("CHANGES_REQUESTED", MAINTAINER, body="no"))
        assert decision.reason == EligibilityReason.EXCLUDED_NOT_ACTIONABLE

    def test_review_with_null_body(self):
        decision = make_filter().classify(review("COMMENTED", MAINTAINER, body=None))
        assert decision.reason == EligibilityReason.EXCLUDED_NOT_ACTIONABLE


class TestClassifyAll:
    """Tests for classify_all() and accepted()."""

    def test_preserves_order(self):
        signals = [reaction("+1", MAINTAINER, 1), reaction("-1", ADMIN, 2), reaction("+1", READER, 3)]
        decisions = make_filter().classify_all(signals)
        assert [d.signal.id for d in decisions] == [1, 2, 3]

    def test_accepted_filters(self):
        signals = [reaction("+1", READER, 1), reaction("+1", MAINTAINER, 2)]
        accepted = make_filter().accepted(signals)
        assert [d.signal.id for d in accepted] == [2]

    def test_looks_up_each_login_once_per_call(self):
        lookups = []
        f = make_filter(lookups=lookups)
        f.classify_all([reaction("+1", MAINTAINER, 1), reaction("eyes", MAINTAINER, 2)])
        assert lookups == ["maintainer"]

    def test_lookup_not_cached_across_calls(self):
        lookups = []
        f = make_filter(lookups=lookups)
        f.classify_all([reaction("+1", MAINTAINER)])
        f.classify_all([reaction("+1", MAINTAINER)])
        assert lookups == ["maintainer", "maintainer"]
