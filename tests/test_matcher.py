import logging

import pytest

from pattern_categorizer.matching.matcher import compile_regex, matches, validate_regex
from pattern_categorizer.core.errors import InvalidPatternError
from pattern_categorizer.models import AmountCondition, RegexPattern, WordlistPattern


@pytest.fixture(autouse=True)
def fresh_regex_cache():
    compile_regex.cache_clear()
    yield
    compile_regex.cache_clear()


def test_wordlist_is_case_insensitive_by_default(make_transaction, wordlist) -> None:
    t = make_transaction(payee="starbucks coffee")
    assert matches(t, wordlist("STARBUCKS"))


def test_wordlist_case_sensitive(make_transaction, wordlist) -> None:
    t = make_transaction(payee="starbucks coffee")
    assert not matches(t, wordlist("STARBUCKS", case_sensitive=True))
    assert matches(t, wordlist("starbucks", case_sensitive=True))


def test_wordlist_is_substring_based(make_transaction, wordlist) -> None:
    t = make_transaction(payee="MINIRIMI")
    assert matches(t, wordlist("RIMI"))


def test_wordlist_any_term_matches(make_transaction, wordlist) -> None:
    t = make_transaction(payee="LIDL SUURKULU")
    assert matches(t, wordlist("RIMI", "LIDL", "SELVER"))
    assert not matches(t, wordlist("RIMI", "SELVER"))


def test_wordlist_field_selection(make_transaction, wordlist) -> None:
    t = make_transaction(payee="Unknown Merchant", description="Coffee and snacks")
    assert matches(t, wordlist("Coffee", field="description"))
    assert not matches(t, wordlist("Coffee", field="payee"))


@pytest.mark.parametrize("field,value", [
    ("account_number", "ACCT-12345"),
    ("transaction_type", "CARD"),
    ("currency", "EUR"),
    ("archive_id", "ARCH-2024-001"),
])
def test_wordlist_on_import_fields(make_transaction, wordlist, field, value) -> None:
    t = make_transaction(**{field: value})
    assert matches(t, wordlist(value[:6], field=field))


def test_any_field_matches(make_transaction) -> None:
    t = make_transaction(payee="Unknown Merchant", description="Grocery shopping")
    pattern = WordlistPattern(fields=["payee", "description"], words=["Grocery"], weight=5)
    assert matches(t, pattern)


def test_missing_field_does_not_match(make_transaction, wordlist) -> None:
    t = make_transaction(payee=None, description=None)
    assert not matches(t, wordlist("test"))
    assert not matches(t, wordlist("test", field="description"))


def test_empty_fields_never_match(make_transaction) -> None:
    t = make_transaction(payee="Target Store")
    pattern = WordlistPattern(fields=[], words=["Target"], weight=5)
    assert not matches(t, pattern)


def test_empty_wordlist_never_matches(make_transaction, wordlist) -> None:
    assert not matches(make_transaction(), wordlist())


def test_negated_word_blocks_match(make_transaction) -> None:
    t = make_transaction(payee="RIMI HYPER REFUND")
    pattern = WordlistPattern(
        words=[{"text": "RIMI"}, {"text": "refund", "negated": True}],
        weight=5,
    )
    assert not matches(t, pattern)
    assert matches(make_transaction(payee="RIMI HYPER"), pattern)


def test_only_negated_words_match_when_absent(make_transaction) -> None:
    pattern = WordlistPattern(words=[{"text": "LIDL", "negated": True}], weight=5)
    assert matches(make_transaction(payee="RIMI"), pattern)
    assert not matches(make_transaction(payee="LIDL"), pattern)


def test_negated_word_respects_case_sensitivity(make_transaction) -> None:
    t = make_transaction(payee="Special OFFER")
    sensitive = WordlistPattern(words=[{"text": "offer", "negated": True}], case_sensitive=True, weight=5)
    insensitive = WordlistPattern(words=[{"text": "offer", "negated": True}], weight=5)
    assert matches(t, sensitive)
    assert not matches(t, insensitive)


def test_punctuation_normalized_containment(make_transaction, wordlist) -> None:
    assert matches(make_transaction(payee="Selver AS, selver.ee"), wordlist("Selver AS selver.ee"))
    assert matches(make_transaction(payee="Store   Name   Inc"), wordlist("Store Name Inc"))


def test_regex_match_and_miss(make_transaction, regex) -> None:
    assert matches(make_transaction(payee="Store-123"), regex(r"Store-\d+"))
    assert not matches(make_transaction(payee="Store ABC"), regex(r"Store-\d+"))


def test_regex_flags(make_transaction, regex) -> None:
    t = make_transaction(payee="starbucks coffee")
    assert not matches(t, regex("STARBUCKS"))
    assert matches(t, regex("STARBUCKS", flags="i"))
    assert matches(t, regex("STARBUCKS", flags="gi"))
    assert matches(t, regex("STARBUCKS", flags="di"))


def test_regex_multiline_flag(make_transaction, regex) -> None:
    t = make_transaction(description="first line\nSECOND line")
    assert not matches(t, regex("^SECOND", field="description"))
    assert matches(t, regex("^SECOND", flags="m", field="description"))


def test_empty_regex_matches_everything(make_transaction, regex) -> None:
    assert matches(make_transaction(payee="Test"), regex(""))


def test_invalid_regex_is_non_matching_and_logged(make_transaction, regex, caplog) -> None:
    pattern = regex("[invalid(regex")
    with caplog.at_level(logging.WARNING):
        assert not matches(make_transaction(payee="[invalid(regex"), pattern)
        assert not matches(make_transaction(payee="anything"), pattern)

    warnings = [record for record in caplog.records if "[invalid(regex" in record.getMessage()]
    assert len(warnings) == 1


def test_unknown_regex_flag_is_non_matching(make_transaction, regex) -> None:
    assert not matches(make_transaction(payee="Test"), regex("Test", flags="x"))


def test_validate_regex_raises_for_authoring() -> None:
    with pytest.raises(InvalidPatternError):
        validate_regex("(unclosed")
    with pytest.raises(InvalidPatternError):
        validate_regex("fine", "q")
    validate_regex(r"\d+", "i")


def test_amount_condition_gates_match(make_transaction) -> None:
    pattern = RegexPattern(
        regex="RIMI",
        weight=5,
        amount_condition=AmountCondition(operator="lt", value=-50),
    )
    assert matches(make_transaction(payee="RIMI", amount=-80), pattern)
    assert not matches(make_transaction(payee="RIMI", amount=-10), pattern)


def test_matching_is_repeatable(make_transaction, wordlist) -> None:
    t = make_transaction(payee="MCDONALDS 133")
    pattern = wordlist("mcdonalds")
    assert [matches(t, pattern) for _ in range(3)] == [True, True, True]
