"""Requirement Rules — tests for individual rules and their numeric helpers.

Tests cover:
    - Cascading tier match (downward only, deceased skipped, top clamp)
    - Past-death contribution from graveyard stat arrays
    - Exaltation aggregation vs single-character mode
    - Graveyard logged-counter and history modes
    - required_lookups only names active branches
"""

from gatekeeper.core.domain_types import IssueSeverity
from gatekeeper.core.profile_types import (
    AchievementTotal, Character, CharacterExaltation, ExaltationRecord,
    GraveyardSummary, PlayerProfileSnapshot,
)
from gatekeeper.core.requirement_policy import policy_from_dict
from gatekeeper.core.requirement_rules import (
    RULES, AuxiliaryLookups, RuleContext, apply_past_deaths, check_character_tiers,
    check_exaltations, check_graveyard, check_last_seen, check_thresholds,
    match_character_tiers, required_lookups, unmet_exaltations,
)


def _ctx(policy_data: dict, aux: AuxiliaryLookups | None = None, **snap) -> RuleContext:
    data = {"check_requirements": True, **policy_data}
    return RuleContext(
        snapshot=PlayerProfileSnapshot(name="Alice", **snap),
        policy=policy_from_dict(data),
        aux=aux or AuxiliaryLookups(),
    )


def _chars(*tiers) -> tuple[Character, ...]:
    return tuple(Character(t) for t in tiers)


# ─── Cascading tier match ────────────────────────────────────────

def test_higher_tier_satisfies_lower_slot():
    remaining = match_character_tiers([0, 0, 1, 0, 0, 0, 0, 0], _chars(3))
    assert not any(count > 0 for count in remaining)


def test_lower_tier_never_satisfies_higher_slot():
    remaining = match_character_tiers([0, 1, 0, 0, 0, 0, 0, 0], _chars(0))
    assert remaining[1] == 1


def test_exact_tier_is_consumed_before_cascading():
    remaining = match_character_tiers([0, 0, 0, 0, 0, 1, 1, 0, 0], _chars(6, 5))
    assert remaining == [0] * 9


def test_deceased_and_unknown_tiers_are_skipped():
    characters = (Character(8, is_deceased=True), Character(None))
    remaining = match_character_tiers([0] * 8 + [1], characters)
    assert remaining[8] == 1


def test_tier_above_array_is_clamped_to_top():
    remaining = match_character_tiers([0, 0, 1], _chars(8))
    assert remaining == [0, 0, 0]


def test_match_does_not_mutate_input():
    needed = [0, 0, 1]
    match_character_tiers(needed, _chars(2))
    assert needed == [0, 0, 1]


def test_past_deaths_reduce_needed_counts():
    needed = [0] * 8 + [2]
    remaining = apply_past_deaths(needed, ((0,) * 8 + (1,), (0,) * 8 + (1,)))
    assert remaining[8] == 0


def test_past_deaths_cascade_downward():
    needed = [0, 0, 0, 0, 0, 0, 1, 0, 0]
    remaining = apply_past_deaths(needed, ((0,) * 8 + (1,),))
    assert remaining[6] == 0


def test_character_rule_reports_exact_shortfall():
    issues = check_character_tiers(_ctx(
        {"characters": {"enabled": True, "stats_needed": [0, 0, 0, 0, 0, 0, 0, 1, 2]}},
        characters=_chars(8),
    ))
    assert len(issues) == 1
    assert issues[0].severity == IssueSeverity.MANUAL
    assert "- Need 1 8/8s" in issues[0].value
    assert "- Need 1 7/8s" in issues[0].value


def test_character_rule_private_graveyard_is_try_again_only_when_short():
    policy = {"characters": {
        "enabled": True, "stats_needed": [0] * 8 + [1], "check_past_deaths": True,
    }}
    short = check_character_tiers(_ctx(policy, characters=_chars(2)))
    assert [i.key for i in short] == ["Graveyard Summary Private"]
    assert short[0].severity == IssueSeverity.TRY_AGAIN
    assert check_character_tiers(_ctx(policy, characters=_chars(8))) == []


# ─── Exaltations ─────────────────────────────────────────────────

def test_one_character_mode_rejects_split_stats():
    record = ExaltationRecord((
        CharacterExaltation("Wizard", {"att": 5}),
        CharacterExaltation("Knight", {"def": 5}),
    ))
    assert unmet_exaltations({"att": 5, "def": 5}, record, on_one_character=True)


def test_one_character_mode_accepts_single_character():
    record = ExaltationRecord((
        CharacterExaltation("Wizard", {"att": 5}),
        CharacterExaltation("Knight", {"att": 5, "def": 5}),
    ))
    assert unmet_exaltations({"att": 5, "def": 5}, record, on_one_character=True) == {}


def test_aggregate_mode_sums_across_characters():
    record = ExaltationRecord((
        CharacterExaltation("Wizard", {"att": 5}),
        CharacterExaltation("Knight", {"def": 5}),
    ))
    assert unmet_exaltations({"att": 5, "def": 5}, record, on_one_character=False) == {}


def test_aggregate_mode_itemizes_missing_amounts():
    record = ExaltationRecord((CharacterExaltation("Wizard", {"att": 2}),))
    assert unmet_exaltations({"att": 5, "spd": 1}, record, False) == {"att": 3, "spd": 1}


def test_exaltation_rule_lists_stats_by_long_name():
    aux = AuxiliaryLookups(exaltations=ExaltationRecord(()))
    issues = check_exaltations(_ctx(
        {"exaltations": {"enabled": True, "minimum": {"att": 2, "dex": 0}}}, aux,
    ))
    assert "Need 2 Attack Exaltations." in issues[0].value
    assert "Dexterity" not in issues[0].value


def test_exaltation_rule_one_character_message_is_combined():
    aux = AuxiliaryLookups(exaltations=ExaltationRecord(()))
    issues = check_exaltations(_ctx(
        {"exaltations": {"enabled": True, "minimum": {"att": 2}, "on_one_character": True}},
        aux,
    ))
    assert "one character that meets all exaltation requirements" in issues[0].value


# ─── Graveyard ───────────────────────────────────────────────────

def test_logged_counter_mode_reports_each_short_target():
    aux = AuxiliaryLookups(logged_completions={"ORYX_3": 3})
    issues = check_graveyard(_ctx(
        {"graveyard": {
            "enabled": True, "use_logged_counters": True,
            "logged_targets": {"ORYX_3": 5, "VOID": 1},
        }},
        aux,
    ))
    assert len(issues) == 1
    assert "- 3/5 Oryx Sanctuary Completions Logged." in issues[0].value
    assert "- 0/1 Void Completions Logged." in issues[0].value


def test_logged_counter_mode_met_targets_pass():
    aux = AuxiliaryLookups(logged_completions={"ORYX_3": 5})
    issues = check_graveyard(_ctx(
        {"graveyard": {"enabled": True, "use_logged_counters": True, "logged_targets": {"ORYX_3": 5}}},
        aux,
    ))
    assert issues == []


def test_history_mode_private_is_try_again():
    issues = check_graveyard(_ctx(
        {"graveyard": {"enabled": True, "history_targets": {"Lost Halls": 1}}},
    ))
    assert issues[0].key == "Graveyard History Private"
    assert issues[0].severity == IssueSeverity.TRY_AGAIN


def test_history_mode_compares_achievement_totals():
    aux = AuxiliaryLookups(graveyard=GraveyardSummary(
        achievements=(AchievementTotal("Lost Halls completed", 2),),
    ))
    issues = check_graveyard(_ctx(
        {"graveyard": {"enabled": True, "history_targets": {"Lost Halls": 3}}}, aux,
    ))
    assert issues[0].severity == IssueSeverity.MANUAL
    assert "2 / 3" in issues[0].value


# ─── Simple rules ────────────────────────────────────────────────

def test_last_seen_hidden_passes():
    assert check_last_seen(_ctx({"last_seen": {"must_be_hidden": True}}, last_seen="Hidden")) == []


def test_thresholds_report_both_shortfalls():
    issues = check_thresholds(_ctx(
        {"rank": {"enabled": True, "min": 40}, "alive_fame": {"enabled": True, "min": 1000}},
        rank=10, alive_fame=5,
    ))
    assert [i.key for i in issues] == ["Rank Too Low", "Alive Fame Too Low"]


def test_rules_run_in_fixed_order():
    names = [rule.__name__ for rule in RULES]
    assert names.index("check_guild") < names.index("check_thresholds")
    assert names.index("check_exaltations") < names.index("check_graveyard")


# ─── Lookups ─────────────────────────────────────────────────────

def test_required_lookups_disabled_policy_needs_nothing():
    needed = required_lookups(policy_from_dict({"graveyard": {"enabled": True}}))
    assert not (needed.graveyard or needed.exaltations or needed.logged_completions)


def test_required_lookups_logged_mode_skips_graveyard_fetch():
    needed = required_lookups(policy_from_dict({
        "check_requirements": True,
        "graveyard": {"enabled": True, "use_logged_counters": True},
    }))
    assert needed.logged_completions
    assert not needed.graveyard


def test_required_lookups_past_deaths_needs_graveyard():
    needed = required_lookups(policy_from_dict({
        "check_requirements": True,
        "characters": {"enabled": True, "check_past_deaths": True},
    }))
    assert needed.graveyard
    assert not needed.exaltations
