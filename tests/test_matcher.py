import pytest
from conftest import make_entry, make_product

from migel.index import KeywordIndex
from migel.matcher import DEFAULT_THRESHOLDS, MigelMatcher, Thresholds, accept, select_best
from migel.models import Candidate, KeywordKind, Language, LocalizedText, MatchResult, MatchedKeyword
from migel.stopwords import StopWordFilter

P = KeywordKind.PRIMARY


def _matcher(*entries):
    return MigelMatcher(KeywordIndex.build(entries, StopWordFilter()))


def _candidate(score, *lengths, code="01.01.01", language=Language.DE):
    keywords = tuple(MatchedKeyword("k" * n + str(i), P, n) for i, n in enumerate(lengths))
    return Candidate(code, language, score, keywords)


# --- thresholds --------------------------------------------------------------


@pytest.mark.parametrize(
    "candidate, expected",
    [
        (_candidate(1.0, 9), False),
        (_candidate(0.5, 10), True),
        (_candidate(0.49, 15), False),
        (_candidate(0.29, 12, 8), False),
        (_candidate(0.3, 6, 5), True),
        (_candidate(0.3, 5, 5), False),
        (_candidate(1.0), False),
    ],
)
def test_accept_thresholds(candidate, expected):
    assert accept(candidate) is expected


def test_custom_thresholds():
    relaxed = Thresholds(single_min_score=0.2, single_min_length=5)
    assert accept(_candidate(0.25, 5), relaxed)
    assert not accept(_candidate(0.25, 5), DEFAULT_THRESHOLDS)


def test_single_keyword_of_length_nine_is_rejected():
    matcher = _matcher(make_entry("05.01.01", de="Kompresse"))
    assert not matcher.match(make_product(de="Kompresse")).matched


def test_single_keyword_of_length_ten_at_half_score_is_accepted():
    matcher = _matcher(make_entry("05.02.01", de="Urinbeutel"))
    result = matcher.match(make_product(de="Urinbeutel Latex"))
    assert result.code == "05.02.01"
    assert result.score == 0.5
    assert not matcher.match(make_product(de="Urinbeutel Latex Klinik")).matched


def test_two_keywords_need_thirty_percent():
    matcher = _matcher(make_entry("07.01.01", de="Absaugschlauch Vakuumpumpe"))
    rejected = matcher.match(make_product(de="Absaugschlauch Vakuumpumpe Rolle Klinik Spital Latex Weiss"))
    assert not rejected.matched
    accepted = matcher.match(make_product(de="Absaugschlauch Vakuumpumpe Rolle Klinik Spital Latex"))
    assert accepted.code == "07.01.01"


# --- decision ----------------------------------------------------------------


def test_end_to_end_example():
    matcher = _matcher(
        make_entry("01.01.01", de="Verweilkatheter", lim_de="nur bei Dauerkatheterisierung")
    )
    result = matcher.match(make_product("p1", de="Verweilkatheter 16Ch steril"))
    assert result.matched
    assert result.product_id == "p1"
    assert result.code == "01.01.01"
    assert result.label == "Verweilkatheter"
    assert result.limitation == "nur bei Dauerkatheterisierung"
    assert result.language is Language.DE

    unmatched = matcher.match(make_product("p2", de="Einweghandschuhe Latex"))
    assert unmatched == MatchResult("p2")
    assert unmatched.code == "" and unmatched.label == ""


def test_secondary_only_match_never_selects_entry(matcher):
    assert not matcher.match(make_product(de="Dauerkatheterisierung")).matched


def test_stopword_overlap_is_no_match():
    matcher = _matcher(make_entry("30.01.01", de="Sterile Wundauflage"))
    assert not matcher.match(make_product(de="Sterile Handschuhe")).matched


def test_inflected_stopword_adds_no_keyword():
    matcher = _matcher(make_entry("21.01.01", de="Inhalationsgerät Vernebler"))
    assert not matcher.match(make_product(de="Vernebler")).matched
    assert not matcher.match(make_product(de="Geräten Vernebler")).matched


def test_language_isolation(matcher):
    # German catalog text is never used for French product text
    assert not matcher.match(make_product(fr="Verweilkatheter")).matched
    # nor is French catalog text used for German product text
    assert not matcher.match(make_product(de="Inhalation")).matched
    result = matcher.match(make_product(fr="Inhalation"))
    assert result.code == "21.01.01"
    assert result.language is Language.FR
    assert result.label == "Appareil d'inhalation"


def test_brand_does_not_open_other_languages(matcher):
    assert not matcher.match(make_product(fr="Masque", brand="Verweilkatheter")).matched


def test_tie_break_prefers_lower_position_code():
    matcher = _matcher(
        make_entry("10.02.01", de="Gehstockhalter"),
        make_entry("10.01.01", de="Gehstockhalter"),
    )
    assert matcher.match(make_product(de="Gehstockhalter")).code == "10.01.01"


def test_select_best_order():
    few = _candidate(0.5, 10, 10, code="01")
    many = _candidate(0.5, 10, 10, 10, code="02")
    better = _candidate(0.6, 10, code="03")
    assert select_best([few, many]) is many
    assert select_best([few, many, better]) is better
    assert select_best([]) is None
    german = _candidate(1.0, 12, code="04", language=Language.DE)
    italian = _candidate(1.0, 12, code="04", language=Language.IT)
    assert select_best([italian, german]) is german


def test_best_candidate_across_languages():
    matcher = _matcher(
        make_entry("21.01.01", de="Inhalationsgerät", fr="Inhalation"),
        make_entry("21.02.01", de="Inhalationsgerät Zerstäuber"),
    )
    result = matcher.match(make_product(de="Inhalationsgerät Zerstäuber", fr="Inhalation nébuliseur"))
    assert result.code == "21.02.01"
    assert result.language is Language.DE


def test_matching_is_deterministic(matcher):
    product = make_product(de="Verweilkatheter Dauerkatheterisierung", fr="Sonde à demeure")
    assert matcher.match(product) == matcher.match(product)


def test_limitation_falls_back_to_german():
    entry = make_entry("01.01.01", de="Verweilkatheter", fr="Sonde", lim_de="nur Dauer")
    result = MatchResult("1", entry, Language.FR, 1.0)
    assert result.label == "Sonde"
    assert result.limitation == "nur Dauer"


def test_localized_text_by_language():
    text = LocalizedText(de="Sonde", fr="Sonde à demeure")
    assert text.get(Language.FR) == "Sonde à demeure"
    assert text.get(Language.IT) == ""
    assert text.get("en") == ""  # type: ignore[arg-type]
    assert not text.has(Language.IT)
