from joyorder.controller.matcher import (
    MatchTier,
    best_match,
    equivalent,
    match_tier,
    normalize_name,
)


def name(x):
    return x


def test_normalize_rewrites_brand_aliases():
    assert normalize_name("  VKBsim Gladiator EVO ") == "VKB Gladiator EVO"
    assert normalize_name("VPC Constellation ALPHA") == "Virpil Constellation ALPHA"
    assert normalize_name("VKBsim T-Rudder", aliases={}) == "VKBsim T-Rudder"


def test_identifier_tier_beats_names():
    candidates = [("a-guid", "Saitek X52"), ("B-GUID", "Something else")]
    result = best_match("Saitek X52", candidates, name_of=lambda c: c[1],
                        target_id="b-guid", id_of=lambda c: c[0])
    assert result.tier is MatchTier.EXACT
    assert result.candidate == ("B-GUID", "Something else")


def test_containment_either_direction_after_normalization():
    assert match_tier("VKBsim Gladiator EVO R", "VKB Gladiator EVO R  ") is MatchTier.CONTAINS
    assert match_tier("Gladiator", "VKB Gladiator EVO") is MatchTier.CONTAINS
    assert match_tier("VKB Gladiator EVO", "gladiator") is MatchTier.CONTAINS
    assert equivalent("VPC Constellation ALPHA", "Virpil Constellation ALPHA-R")


def test_fuzzy_token_needs_half_of_significant_tokens():
    target = "Thrustmaster T.16000M FCS"
    result = best_match(target, ["VKB T-Rudder", "T.16000M Joystick (Thrustmaster)"], name_of=name)
    assert result.tier is MatchTier.FUZZY_TOKEN
    assert result.candidate == "T.16000M Joystick (Thrustmaster)"

    # only 1 of 3 tokens
    assert match_tier(target, "FCS Pedals") is MatchTier.NO_MATCH


def test_fuzzy_ignores_short_tokens_and_can_be_disabled():
    # "X" and "52" are too short to count
    assert match_tier("X 52", "Saitek X52 Pro") is MatchTier.NO_MATCH
    assert match_tier("Thrustmaster T.16000M FCS", "T.16000M Thrustmaster stick",
                      fuzzy=False) is MatchTier.NO_MATCH


def test_first_candidate_in_order_wins_within_a_tier():
    result = best_match("Gladiator", ["VKB Gladiator EVO L", "VKB Gladiator EVO R"], name_of=name)
    assert result.candidate == "VKB Gladiator EVO L"


def test_no_match_is_a_result_not_an_error():
    result = best_match("Logitech Wheel", ["VKB T-Rudder"], name_of=name)
    assert result.tier is MatchTier.NO_MATCH
    assert result.candidate is None
    assert not result
    assert not best_match("anything", [], name_of=name)
