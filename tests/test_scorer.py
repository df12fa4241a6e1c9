"""Tests for the scoring rubric."""
from dataclasses import replace

import pytest

from skillsync.core import scorer
from skillsync.core.scorer import (
    COLLABORATION_CRITERIA,
    IDENTITY_CRITERIA,
    SHARP_EDGES_CRITERIA,
    VALIDATIONS_CRITERIA,
    Criterion,
    ScoringContext,
    Tier,
    evaluate_category,
    get_tier,
    score_all_skills,
    score_skill,
)
from skillsync.models.skill import CollaborationDocument, Delegation


def _context(*ids: str) -> ScoringContext:
    return ScoringContext(all_skill_ids=frozenset(ids))


class TestRubricShape:
    """The rubric's categories each sum to 25."""

    @pytest.mark.parametrize("criteria", [
        IDENTITY_CRITERIA,
        SHARP_EDGES_CRITERIA,
        VALIDATIONS_CRITERIA,
        COLLABORATION_CRITERIA,
    ])
    def test_category_max_is_25(self, criteria):
        assert sum(c.max_points for c in criteria) == 25


class TestScoreSkill:
    """Test score_skill."""

    def test_full_skill_scores_100(self, full_skill):
        """Test that a fully documented skill earns every point."""
        # Given: a complete skill whose delegates exist
        context = _context(full_skill.id, "python-expert", "devops-expert")

        # When: we score it
        scored = score_skill(full_skill, context)

        # Then: every category is maxed
        breakdown = scored.score.breakdown
        assert breakdown.identity == 25
        assert breakdown.sharp_edges == 25
        assert breakdown.validations == 25
        assert breakdown.collaboration == 25
        assert scored.score.total == 100
        assert scored.score.gaps == []
        assert len(scored.score.strengths) == 5

    def test_total_equals_breakdown_sum(self, make_parsed_skill):
        """Test that total is always the breakdown sum and within range."""
        skill = make_parsed_skill(
            skill_yaml={"triggers": ["react", "ui"], "owns": ["frontend"]},
            sharp_edges_yaml={"edges": [{"detection": "short"}, {"detection": "a long enough detection"}]},
            has_patterns_md=True,
        )

        scored = score_skill(skill)

        assert scored.score.total == scored.score.breakdown.total
        assert 0 <= scored.score.total <= 100

    def test_scoring_is_deterministic(self, full_skill):
        """Test that identical input gives identical output."""
        context = _context(full_skill.id)
        assert score_skill(full_skill, context).score == score_skill(full_skill, context).score

    def test_empty_identity_scores_zero(self, make_parsed_skill):
        """Test a skill with no identity data and a mismatched folder."""
        # Given: id doesn't match the folder and nothing else is declared
        skill = make_parsed_skill(skill_id="ghost", folder="ghost-folder", skill_yaml={})

        # When: we score it
        scored = score_skill(skill)

        # Then: identity is zero
        assert scored.score.breakdown.identity == 0

    def test_folder_match_alone_earns_two_points(self, make_parsed_skill):
        skill = make_parsed_skill(skill_yaml={})
        assert score_skill(skill).score.breakdown.identity == 2

    def test_missing_documents_never_raise(self, make_parsed_skill):
        """Test that a skill with no documents at all scores without error."""
        skill = make_parsed_skill(skill_id="bare", folder="other")

        scored = score_skill(skill)

        assert scored.score.breakdown.identity == 0
        assert scored.score.breakdown.sharp_edges == 0
        assert scored.score.breakdown.validations == 0
        # Leaf skill neutral points plus fail-open integrity
        assert scored.score.breakdown.collaboration == 3 + 5
        assert scored.score.gaps[0].startswith("Structure & Integrity")

    def test_malformed_shapes_degrade_instead_of_failing(self, make_parsed_skill):
        """Test that wrong YAML types just reduce the score."""
        skill = make_parsed_skill(
            skill_yaml={"triggers": "not-a-list", "identity": ["wrong"], "owns": 42},
            sharp_edges_yaml={"edges": "nope"},
            validations_yaml={"validations": [None, 3]},
            collaboration_yaml={"delegates_to": {"a": {"skill_id": "x"}}},
        )

        scored = score_skill(skill, _context())

        assert scored.score.gaps != ["Scoring failed"]
        # Two blank validations: count points, no valid patterns
        assert scored.score.breakdown.validations == 4

    def test_scoring_failure_returns_zero(self, full_skill, monkeypatch):
        """Test that an evaluator error yields a zero score with a gap."""
        # Given: a criterion that blows up
        def explode(skill, context):
            raise TypeError("boom")

        monkeypatch.setattr(
            scorer, "IDENTITY_CRITERIA", (Criterion("Exploding", 5, explode),)
        )

        # When: we score
        scored = score_skill(full_skill)

        # Then: the skill is kept with a zero score
        assert scored.skill is full_skill
        assert scored.score.total == 0
        assert scored.score.breakdown.total == 0
        assert scored.score.gaps == ["Scoring failed"]
        assert scored.score.strengths == []


class TestIdentityCriteria:
    """Thresholds within the identity category."""

    def test_placeholder_expertise_earns_one_point(self, make_parsed_skill):
        skill = make_parsed_skill(skill_yaml={"identity": {"expertise": ["a", "b", "TODO: fill"]}})
        result = evaluate_category(skill, IDENTITY_CRITERIA[1:2])
        assert result.score == 1

    @pytest.mark.parametrize("count,expected", [(1, 1), (4, 4), (5, 5), (9, 5)])
    def test_expertise_points(self, make_parsed_skill, count, expected):
        skill = make_parsed_skill(
            skill_yaml={"identity": {"expertise": [f"area {i}" for i in range(count)]}}
        )
        assert evaluate_category(skill, IDENTITY_CRITERIA[1:2]).score == expected

    @pytest.mark.parametrize("count,expected", [(0, 0), (1, 2), (2, 4), (3, 5), (7, 5)])
    def test_principles_points(self, make_parsed_skill, count, expected):
        skill = make_parsed_skill(
            skill_yaml={"identity": {"principles": [f"p{i}" for i in range(count)]}}
        )
        assert evaluate_category(skill, IDENTITY_CRITERIA[2:3]).score == expected

    def test_short_triggers_are_ignored(self, make_parsed_skill):
        skill = make_parsed_skill(skill_yaml={"triggers": ["ui", "db", "api", "react"]})
        result = evaluate_category(skill, IDENTITY_CRITERIA[3:4])
        assert result.score == 2

    def test_scope_needs_real_description(self, make_parsed_skill):
        skill = make_parsed_skill(
            skill_yaml={"owns": ["x"], "description": "TODO write a description here"}
        )
        assert evaluate_category(skill, IDENTITY_CRITERIA[4:5]).score == 3

    def test_placeholder_role_not_counted(self, make_parsed_skill):
        skill = make_parsed_skill(skill_yaml={"identity": {"role": "TODO: describe the role"}})
        assert evaluate_category(skill, IDENTITY_CRITERIA[0:1]).score == 2


class TestRatioCriteria:
    """Ratio-scaled criteria round half up."""

    def test_detection_ratio_rounds_half_up(self, make_parsed_skill):
        # Given: 1 of 16 edges has detection -> 0.5 points rounds to 1
        edges = [{"detection": "a detection regex"}] + [{}] * 15
        skill = make_parsed_skill(sharp_edges_yaml={"edges": edges})

        result = evaluate_category(skill, SHARP_EDGES_CRITERIA[1:2])

        assert result.score == 1

    def test_solution_ratio(self, make_parsed_skill):
        edges = [
            {"solution": "Use a transaction around the whole batch."},
            {"solution": "todo: figure out a proper fix for this"},
            {"solution": "short"},
            {},
        ]
        skill = make_parsed_skill(sharp_edges_yaml={"edges": edges})

        # 1/4 * 5 = 1.25 -> 1
        assert evaluate_category(skill, SHARP_EDGES_CRITERIA[2:3]).score == 1

    def test_edge_count_points(self, make_parsed_skill):
        skill = make_parsed_skill(sharp_edges_yaml={"edges": [{}, {}, {}]})
        assert evaluate_category(skill, SHARP_EDGES_CRITERIA[0:1]).score == 6

    def test_invalid_regex_patterns_not_counted(self, make_parsed_skill):
        validations = [
            {"pattern": r"\bfoo\b"},
            {"pattern": "([unclosed"},
            {"pattern": "abc"},
            {"pattern": "valid.*pattern"},
        ]
        skill = make_parsed_skill(validations_yaml={"validations": validations})

        result = evaluate_category(skill, VALIDATIONS_CRITERIA[1:2])

        # 2/4 * 8 = 4
        assert result.score == 4

    def test_delegate_conditions_ratio(self, make_parsed_skill):
        skill = make_parsed_skill(collaboration_yaml={"delegates_to": [
            {"skill_id": "a", "when": "When the task needs infrastructure"},
            {"skill_id": "b", "when": "sometimes"},
            {"skill_id": "c"},
        ]})

        # 1/3 * 6 = 2
        assert evaluate_category(skill, COLLABORATION_CRITERIA[1:2]).score == 2


class TestCollaborationCriteria:
    """Collaboration category rules."""

    def test_leaf_skill_gets_neutral_points(self, make_parsed_skill):
        skill = make_parsed_skill(collaboration_yaml={"receives_from": [{"skill_id": "x"}]})
        assert evaluate_category(skill, COLLABORATION_CRITERIA[1:2]).score == 3

    def test_broken_delegate_link_costs_five_points(self, full_skill):
        """Test that a dangling delegate loses exactly the integrity points."""
        # Given: the complete skill and a copy whose second delegate is missing
        valid = full_skill
        delegates = list(full_skill.collaboration.delegates_to)
        delegates[1] = Delegation(skill_id="missing-skill", when=delegates[1].when)
        broken = replace(
            full_skill,
            collaboration=CollaborationDocument(
                delegates_to=delegates,
                receives_from=full_skill.collaboration.receives_from,
            ),
        )
        context = _context("postgres-expert", "python-expert", "devops-expert")

        # When: both are scored with the same population
        valid_score = score_skill(valid, context).score
        broken_score = score_skill(broken, context).score

        # Then: the broken one is 5 points behind in collaboration
        assert valid_score.breakdown.collaboration - broken_score.breakdown.collaboration == 5
        assert any("Broken links to: missing-skill" in g for g in broken_score.gaps)

    def test_missing_context_fails_open(self, make_parsed_skill):
        skill = make_parsed_skill(collaboration_yaml={"delegates_to": [{"skill_id": "nowhere"}]})
        result = evaluate_category(skill, COLLABORATION_CRITERIA[2:3], context=None)
        assert result.score == 5

    @pytest.mark.parametrize("description,expected", [
        ("", 0),
        ("Short one.", 1),
        ("x" * 100, 1),
        ("x" * 101, 3),
    ])
    def test_description_tiers(self, make_parsed_skill, description, expected):
        skill = make_parsed_skill(skill_yaml={"description": description})
        assert evaluate_category(skill, COLLABORATION_CRITERIA[4:5]).score == expected


class TestGapsAndStrengths:
    """Gap and strength reporting."""

    def test_gaps_are_capped_at_five_in_category_order(self, make_parsed_skill):
        skill = make_parsed_skill(skill_id="bare", folder="elsewhere", skill_yaml={})

        gaps = score_skill(skill).score.gaps

        assert len(gaps) == 5
        assert [g.split(":")[0] for g in gaps] == [c.name for c in IDENTITY_CRITERIA]

    def test_strength_threshold_is_eighty_percent(self, make_parsed_skill):
        # 4 of 5 expertise points is a strength, 3 is not
        four = make_parsed_skill(skill_yaml={"identity": {"expertise": ["a", "b", "c", "d"]}})
        three = make_parsed_skill(skill_yaml={"identity": {"expertise": ["a", "b", "c"]}})

        assert evaluate_category(four, IDENTITY_CRITERIA[1:2]).strengths
        assert not evaluate_category(three, IDENTITY_CRITERIA[1:2]).strengths


class TestScoreAllSkills:
    """Test score_all_skills."""

    def test_sorted_by_score_descending(self, make_parsed_skill, full_skill):
        weak = make_parsed_skill(skill_id="weak", skill_yaml={})

        scored = score_all_skills([weak, full_skill])

        assert [s.id for s in scored] == ["postgres-expert", "weak"]

    def test_ties_keep_input_order(self, make_parsed_skill):
        skills = [make_parsed_skill(skill_id=name, skill_yaml={}) for name in ("c", "a", "b")]

        scored = score_all_skills(skills)

        assert [s.id for s in scored] == ["c", "a", "b"]

    def test_population_context_detects_broken_links(self, make_parsed_skill):
        skill = make_parsed_skill(
            skill_id="lonely",
            collaboration_yaml={"delegates_to": [{"skill_id": "absent", "when": "whenever it is needed"}]},
        )

        scored = score_all_skills([skill])

        # 1 rule (2) + conditioned delegate (6) + broken integrity (0)
        assert scored[0].score.breakdown.collaboration == 8

    def test_batch_matches_single_with_context(self, make_parsed_skill, full_skill):
        other = make_parsed_skill(skill_id="python-expert", skill_yaml={"triggers": ["python"]})
        population = [full_skill, other]
        context = ScoringContext.from_skills(population)

        batch = {s.id: s.score for s in score_all_skills(population)}

        for skill in population:
            assert batch[skill.id] == score_skill(skill, context).score


class TestGetTier:
    """Test get_tier boundaries."""

    @pytest.mark.parametrize("score,tier", [
        (100, Tier.EXCELLENT),
        (80, Tier.EXCELLENT),
        (79, Tier.GOOD),
        (60, Tier.GOOD),
        (59, Tier.MEDIOCRE),
        (40, Tier.MEDIOCRE),
        (39, Tier.POOR),
        (0, Tier.POOR),
    ])
    def test_boundaries(self, score, tier):
        assert get_tier(score) == tier

    def test_tier_compares_equal_to_string(self):
        assert get_tier(85) == "excellent"
