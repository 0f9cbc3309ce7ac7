"""
Tests for individual and grouped suggestions, stakeholder matching and linking.
"""

import uuid
from datetime import datetime, timezone

import pytest

from personres.config import SuggestionConfig
from personres.errors import NotFoundError, ValidationError
from personserver.query.grouping import refresh_grouping
from personserver.query.merge_workflow import reject_group
from personserver.query.schemas import StakeholderCreate, StakeholderUpdate
from personserver.query.stakeholders import (
    auto_link_by_name,
    create_stakeholder,
    delete_stakeholder,
    get_linked_artifacts,
    get_stakeholder,
    list_stakeholders,
    update_stakeholder,
)
from personserver.query.suggestions import (
    get_grouped_suggestions,
    get_suggestions,
    link_person_to_stakeholder,
    truncate_snippet,
)
from personserver.storage.filters import StakeholderFilter


class TestSuggestions:
    """Per-mention suggestions."""

    def test_empty_program(self, in_memory_storage, program):
        assert get_suggestions(in_memory_storage, program.program_id) == []

    def test_unknown_program(self, in_memory_storage):
        with pytest.raises(NotFoundError):
            get_suggestions(in_memory_storage, str(uuid.uuid4()))

    def test_stakeholder_hint(self, in_memory_storage, seed, program, artifact):
        stakeholder = seed.stakeholder(program, "Robert Johnston")
        seed.mention(artifact, "Robert Johnson", organization="Globex")

        [suggestion] = get_suggestions(in_memory_storage, program.program_id)

        assert suggestion.suggested_stakeholder_id == stakeholder.stakeholder_id
        assert suggestion.suggested_stakeholder_name == "Robert Johnston"
        assert suggestion.match_score == pytest.approx(13 / 18)
        assert suggestion.suggested_type == "external"
        assert suggestion.suggested_is_internal is False

    def test_no_hint_below_threshold(self, in_memory_storage, seed, program, artifact):
        seed.stakeholder(program, "Alice Walker")
        seed.mention(artifact, "Bob Jones")

        [suggestion] = get_suggestions(in_memory_storage, program.program_id)

        assert suggestion.suggested_stakeholder_id is None
        assert suggestion.match_score == 0.0

    def test_deleted_stakeholder_never_suggested(self, in_memory_storage, seed, program, artifact):
        seed.stakeholder(program, "Robert Johnson", deleted=True)
        seed.mention(artifact, "Robert Johnson")

        [suggestion] = get_suggestions(in_memory_storage, program.program_id)
        assert suggestion.suggested_stakeholder_id is None

    @pytest.mark.parametrize("organization", [None, "acme labs"])
    def test_internal_classification(self, in_memory_storage, seed, program, artifact, organization):
        seed.mention(artifact, "Dana Lee", organization=organization)

        [suggestion] = get_suggestions(in_memory_storage, program.program_id)
        assert suggestion.suggested_type == "internal"
        assert suggestion.suggested_is_internal is True

    def test_ordering(self, in_memory_storage, seed, program, artifact):
        quiet = seed.mention(artifact, "Quiet Person", mention_count=1)
        loud = seed.mention(artifact, "Loud Person", mention_count=5)
        recent = seed.mention(artifact, "Recent Person", mention_count=1)

        ids = [s.person_id for s in get_suggestions(in_memory_storage, program.program_id)]
        assert ids == [loud.person_id, recent.person_id, quiet.person_id]

    def test_artifact_refs(self, in_memory_storage, program, artifact, seed):
        mention = seed.mention(artifact, "Dana Lee", mention_count=3)

        [suggestion] = get_suggestions(in_memory_storage, program.program_id)
        assert suggestion.artifact_count == 1
        assert suggestion.total_mentions == 3
        assert suggestion.last_mentioned == mention.extracted_at
        assert [(a.artifact_id, a.filename, a.mention_count) for a in suggestion.artifacts] == [
            (artifact.artifact_id, "kickoff.pdf", 3)
        ]

    def test_resolved_mentions_excluded(self, in_memory_storage, seed, program, artifact):
        stakeholder = seed.stakeholder(program, "Dana Lee")
        seed.mention(artifact, "Dana Lee", stakeholder_id=stakeholder.stakeholder_id)
        open_mention = seed.mention(artifact, "Sam Park")

        ids = [s.person_id for s in get_suggestions(in_memory_storage, program.program_id)]
        assert ids == [open_mention.person_id]

    def test_exclude_grouped(self, in_memory_storage, seed, program, artifact, smith_mentions, smith_similarity):
        loner = seed.mention(artifact, "Alice Walker")
        refresh_grouping(in_memory_storage, program.program_id, similarity=smith_similarity)

        everything = get_suggestions(in_memory_storage, program.program_id)
        ungrouped = get_suggestions(in_memory_storage, program.program_id, exclude_grouped=True)

        assert len(everything) == 4
        assert [s.person_id for s in ungrouped] == [loner.person_id]


class TestGroupedSuggestions:
    """Pending merge groups as review cards."""

    def test_group_totals(self, in_memory_storage, program, artifact, smith_mentions, smith_similarity):
        refresh_grouping(in_memory_storage, program.program_id, similarity=smith_similarity)

        [group] = get_grouped_suggestions(in_memory_storage, program.program_id)

        assert group.suggested_name == "Jon Smith"
        assert group.status == "pending"
        assert group.total_persons == 3
        assert group.total_artifacts == 1
        assert group.total_mentions == 3
        assert group.average_confidence == pytest.approx(0.8)
        assert group.last_mentioned == smith_mentions[-1].extracted_at
        assert {m.person_id for m in group.members} == {m.person_id for m in smith_mentions}

    def test_conflict_options(self, in_memory_storage, program, smith_mentions, smith_similarity):
        refresh_grouping(in_memory_storage, program.program_id, similarity=smith_similarity)

        [group] = get_grouped_suggestions(in_memory_storage, program.program_id)

        assert group.has_role_conflicts is True
        assert [(o.value, o.count) for o in group.role_options] == [("Eng", 2), ("Engineer", 1)]
        assert group.role_options[0].average_confidence == pytest.approx(0.8)
        assert group.has_org_conflicts is False
        assert group.org_options == []

    def test_snippets_truncated(self, in_memory_storage, seed, program, artifact, smith_similarity):
        long_snippet = "x" * 250
        seed.mention(artifact, "Jon Smith", snippets=[long_snippet, "second"])
        seed.mention(artifact, "Jonathan Smith", snippets=["short"])
        refresh_grouping(in_memory_storage, program.program_id, similarity=smith_similarity)

        [group] = get_grouped_suggestions(in_memory_storage, program.program_id)
        snippets = sorted(c.snippet for c in group.all_contexts)

        assert snippets == sorted(["x" * 200 + "...", "short"])
        assert all(c.artifact_name == "kickoff.pdf" for c in group.all_contexts)

    def test_only_pending_groups(self, in_memory_storage, program, smith_mentions, smith_similarity):
        result = refresh_grouping(in_memory_storage, program.program_id, similarity=smith_similarity)
        reject_group(in_memory_storage, program.program_id, result.group_ids[0])

        assert get_grouped_suggestions(in_memory_storage, program.program_id) == []

    def test_ordered_by_total_mentions(self, in_memory_storage, seed, program, artifact):
        seed.mention(artifact, "Alice Walker")
        seed.mention(artifact, "alice walker")
        seed.mention(artifact, "Robert Johnson", mention_count=4)
        seed.mention(artifact, "Robert Johnston", mention_count=4)
        refresh_grouping(in_memory_storage, program.program_id)

        names = [g.suggested_name for g in get_grouped_suggestions(in_memory_storage, program.program_id)]
        assert names == ["Robert Johnson", "Alice Walker"]

    def test_member_without_snippet_still_listed(self, in_memory_storage, seed, program, artifact, smith_similarity):
        seed.mention(artifact, "Jon Smith", snippets=["Jon Smith opened the meeting."])
        seed.mention(artifact, "Jonathan Smith")
        refresh_grouping(in_memory_storage, program.program_id, similarity=smith_similarity)

        [group] = get_grouped_suggestions(in_memory_storage, program.program_id)
        contexts = {c.person_name: c.snippet for c in group.all_contexts}

        assert contexts == {"Jon Smith": "Jon Smith opened the meeting.", "Jonathan Smith": ""}

    def test_truncate_snippet(self):
        assert truncate_snippet("abc", 3) == "abc"
        assert truncate_snippet("abcd", 3) == "abc..."


class TestAutoLink:
    """Matching a free-text name to a stakeholder."""

    def test_exact_match_is_case_insensitive(self, in_memory_storage, seed, program):
        stakeholder = seed.stakeholder(program, "John Doe")

        def never(a, b):
            raise AssertionError("fuzzy matching should not run")

        match = auto_link_by_name(in_memory_storage, program.program_id, "john doe", similarity=never)

        assert match.stakeholder_id == stakeholder.stakeholder_id
        assert match.match_type == "exact"
        assert match.similarity == 1.0

    def test_exact_match_folds_non_ascii_case(self, in_memory_storage, seed, program):
        stakeholder = seed.stakeholder(program, "José Álvarez")

        match = auto_link_by_name(in_memory_storage, program.program_id, "JOSÉ ÁLVAREZ")

        assert match.stakeholder_id == stakeholder.stakeholder_id
        assert match.match_type == "exact"

    def test_exact_match_prefers_oldest(self, in_memory_storage, seed, program):
        older = seed.stakeholder(program, "Dana Lee")
        seed.stakeholder(program, "dana lee")

        assert auto_link_by_name(in_memory_storage, program.program_id, "DANA LEE").stakeholder_id == older.stakeholder_id

    def test_fuzzy_match(self, in_memory_storage, seed, program):
        stakeholder = seed.stakeholder(program, "Robert Johnston")

        match = auto_link_by_name(in_memory_storage, program.program_id, "Robert Johnson")

        assert match.stakeholder_id == stakeholder.stakeholder_id
        assert match.match_type == "fuzzy"
        assert match.similarity == pytest.approx(13 / 18)

    def test_no_match(self, in_memory_storage, seed, program):
        seed.stakeholder(program, "Alice Walker")
        with pytest.raises(NotFoundError):
            auto_link_by_name(in_memory_storage, program.program_id, "Bob Jones")

    def test_blank_name(self, in_memory_storage, program):
        with pytest.raises(ValidationError):
            auto_link_by_name(in_memory_storage, program.program_id, "  ")

    def test_threshold_is_configurable(self, in_memory_storage, seed, program):
        seed.stakeholder(program, "Robert Johnston")
        with pytest.raises(NotFoundError):
            auto_link_by_name(
                in_memory_storage,
                program.program_id,
                "Robert Johnson",
                config=SuggestionConfig(stakeholder_match_threshold=0.9),
            )


class TestLinkPerson:
    """Resolving a single mention."""

    def test_link_and_relink(self, in_memory_storage, seed, program, artifact):
        first = seed.stakeholder(program, "Dana Lee")
        second = seed.stakeholder(program, "Dana Li")
        mention = seed.mention(artifact, "Dana Lee")

        link_person_to_stakeholder(in_memory_storage, program.program_id, mention.person_id, first.stakeholder_id)
        result = link_person_to_stakeholder(
            in_memory_storage, program.program_id, mention.person_id, second.stakeholder_id
        )

        assert result.stakeholder_id == second.stakeholder_id
        assert in_memory_storage.get_mention(mention.person_id).stakeholder_id == second.stakeholder_id

    def test_missing_mention(self, in_memory_storage, seed, program):
        stakeholder = seed.stakeholder(program, "Dana Lee")
        with pytest.raises(NotFoundError):
            link_person_to_stakeholder(in_memory_storage, program.program_id, str(uuid.uuid4()), stakeholder.stakeholder_id)

    def test_stakeholder_of_other_program(self, in_memory_storage, seed, program, artifact):
        other = seed.program(name="Gemini")
        foreign = seed.stakeholder(other, "Dana Lee")
        mention = seed.mention(artifact, "Dana Lee")

        with pytest.raises(NotFoundError):
            link_person_to_stakeholder(in_memory_storage, program.program_id, mention.person_id, foreign.stakeholder_id)
        assert in_memory_storage.get_mention(mention.person_id).stakeholder_id is None


class TestStakeholderDirectory:
    """Creating, listing and inspecting stakeholders."""

    def test_create_classifies_by_organization(self, in_memory_storage, program):
        internal = create_stakeholder(
            in_memory_storage, program.program_id, StakeholderCreate(person_name="Dana Lee", organization="Acme")
        )
        external = create_stakeholder(
            in_memory_storage, program.program_id, StakeholderCreate(person_name="Sam Park", organization="Globex")
        )

        assert (internal.stakeholder_type, internal.is_internal) == ("internal", True)
        assert (external.stakeholder_type, external.is_internal) == ("external", False)

    def test_explicit_type_wins(self, in_memory_storage, program):
        record = create_stakeholder(
            in_memory_storage,
            program.program_id,
            StakeholderCreate(person_name="Dana Lee", organization="Acme", stakeholder_type="partner"),
        )
        assert record.stakeholder_type == "partner"
        assert record.is_internal is False

    @pytest.mark.parametrize(
        "payload",
        [
            StakeholderCreate(person_name="   "),
            StakeholderCreate(person_name="Dana Lee", stakeholder_type="friend"),
            StakeholderCreate(person_name="Dana Lee", engagement_level="obsessed"),
        ],
    )
    def test_create_validation(self, in_memory_storage, program, payload):
        with pytest.raises(ValidationError):
            create_stakeholder(in_memory_storage, program.program_id, payload)

    def test_list_with_filter(self, in_memory_storage, seed, program):
        seed.stakeholder(program, "Dana Lee", stakeholder_type="internal", is_internal=True)
        seed.stakeholder(program, "Sam Park")
        seed.stakeholder(program, "Gone Person", deleted=True)

        everyone = list_stakeholders(in_memory_storage, program.program_id)
        internal = list_stakeholders(in_memory_storage, program.program_id, StakeholderFilter(is_internal=True))

        assert [s.person_name for s in everyone] == ["Dana Lee", "Sam Park"]
        assert [s.person_name for s in internal] == ["Dana Lee"]

    def test_list_rejects_unknown_type(self, in_memory_storage, program):
        with pytest.raises(ValidationError):
            list_stakeholders(in_memory_storage, program.program_id, StakeholderFilter(stakeholder_type="friend"))

    def test_linked_artifacts(self, in_memory_storage, seed, program):
        stakeholder = seed.stakeholder(program, "Dana Lee")
        older = seed.artifact(program, "older.pdf", uploaded_at=datetime(2024, 2, 1, tzinfo=timezone.utc))
        newer = seed.artifact(program, "newer.pdf", uploaded_at=datetime(2024, 3, 1, tzinfo=timezone.utc))
        seed.mention(older, "Dana Lee", mention_count=2, stakeholder_id=stakeholder.stakeholder_id)
        seed.mention(newer, "Dana Lee", mention_count=1, stakeholder_id=stakeholder.stakeholder_id)
        seed.mention(newer, "D. Lee", mention_count=4, stakeholder_id=stakeholder.stakeholder_id)

        linked = get_linked_artifacts(in_memory_storage, program.program_id, stakeholder.stakeholder_id)

        assert [(a.filename, a.mention_count) for a in linked] == [("newer.pdf", 5), ("older.pdf", 2)]

    def test_linked_artifacts_unknown_stakeholder(self, in_memory_storage, program):
        with pytest.raises(NotFoundError):
            get_linked_artifacts(in_memory_storage, program.program_id, str(uuid.uuid4()))


class TestStakeholderChanges:
    """Partial updates and soft deletion."""

    def test_partial_update(self, in_memory_storage, seed, program):
        stakeholder = seed.stakeholder(program, "Dana Lee", engagement_level="key")

        record = update_stakeholder(
            in_memory_storage, program.program_id, stakeholder.stakeholder_id, StakeholderUpdate(role="  Sponsor ")
        )

        assert record.role == "Sponsor"
        assert record.engagement_level == "key"
        assert record.person_name == "Dana Lee"
        assert record.updated_at > record.created_at

    def test_empty_string_clears_optional_field(self, in_memory_storage, seed, program):
        stakeholder = seed.stakeholder(program, "Dana Lee", engagement_level="key")

        record = update_stakeholder(
            in_memory_storage, program.program_id, stakeholder.stakeholder_id, StakeholderUpdate(engagement_level="")
        )

        assert record.engagement_level is None

    @pytest.mark.parametrize(
        "payload",
        [
            StakeholderUpdate(),
            StakeholderUpdate(person_name=None),
            StakeholderUpdate(person_name="  "),
            StakeholderUpdate(is_internal=None),
            StakeholderUpdate(stakeholder_type="friend"),
            StakeholderUpdate(engagement_level="obsessed"),
        ],
    )
    def test_update_validation(self, in_memory_storage, seed, program, payload):
        stakeholder = seed.stakeholder(program, "Dana Lee")
        with pytest.raises(ValidationError):
            update_stakeholder(in_memory_storage, program.program_id, stakeholder.stakeholder_id, payload)
        assert get_stakeholder(in_memory_storage, program.program_id, stakeholder.stakeholder_id).person_name == "Dana Lee"

    def test_update_other_program(self, in_memory_storage, seed, program):
        foreign = seed.stakeholder(seed.program(name="Gemini"), "Dana Lee")
        with pytest.raises(NotFoundError):
            update_stakeholder(in_memory_storage, program.program_id, foreign.stakeholder_id, StakeholderUpdate(role="CFO"))

    def test_delete_hides_stakeholder(self, in_memory_storage, seed, program, artifact):
        stakeholder = seed.stakeholder(program, "Dana Lee")
        mention = seed.mention(artifact, "Dana Lee", stakeholder_id=stakeholder.stakeholder_id)

        record = delete_stakeholder(in_memory_storage, program.program_id, stakeholder.stakeholder_id)

        assert record.deleted_at is not None
        assert list_stakeholders(in_memory_storage, program.program_id) == []
        with pytest.raises(NotFoundError):
            get_stakeholder(in_memory_storage, program.program_id, stakeholder.stakeholder_id)
        with pytest.raises(NotFoundError):
            auto_link_by_name(in_memory_storage, program.program_id, "Dana Lee")
        assert in_memory_storage.get_mention(mention.person_id).stakeholder_id == stakeholder.stakeholder_id

    def test_delete_twice(self, in_memory_storage, seed, program):
        stakeholder = seed.stakeholder(program, "Dana Lee")
        delete_stakeholder(in_memory_storage, program.program_id, stakeholder.stakeholder_id)
        with pytest.raises(NotFoundError):
            delete_stakeholder(in_memory_storage, program.program_id, stakeholder.stakeholder_id)

    def test_deleted_stakeholder_cannot_be_updated(self, in_memory_storage, seed, program):
        stakeholder = seed.stakeholder(program, "Dana Lee", deleted=True)
        with pytest.raises(NotFoundError):
            update_stakeholder(in_memory_storage, program.program_id, stakeholder.stakeholder_id, StakeholderUpdate(role="CFO"))
