import pytest

from pattern_categorizer.scoring.scorer import final_score, priority_multiplier, raw_score, score, score_rules


def test_or_returns_zero_when_nothing_matches(make_transaction, make_rule, wordlist) -> None:
    rule = make_rule("Food", wordlist("KFC"), priority=1)
    assert score(make_transaction(payee="RIMI"), rule) == 0


def test_or_sums_matched_weights_only(make_transaction, make_rule, wordlist) -> None:
    rule = make_rule(
        "Food",
        wordlist("MCDONALDS", weight=10),
        wordlist("STOIANKA", field="description", weight=5),
        wordlist("KFC", weight=7),
    )
    t = make_transaction(payee="MCDONALDS 133", description="MCDONALDS 133 STOIANKA")
    assert raw_score(t, rule) == 15
    assert score(t, rule) == 15


def test_or_counts_a_pattern_once_even_with_many_hits(make_transaction, make_rule, wordlist) -> None:
    rule = make_rule("Food", wordlist("MC", "DONALDS", weight=5))
    assert raw_score(make_transaction(payee="MCDONALDS"), rule) == 5


def test_and_requires_every_pattern(make_transaction, make_rule, wordlist) -> None:
    rule = make_rule(
        "Large Grocery",
        wordlist("RIMI", weight=10),
        wordlist("LOYALTY", field="description", weight=5),
        pattern_logic="AND",
    )
    assert score(make_transaction(payee="RIMI", description="STANDARD PURCHASE"), rule) == 0
    assert score(make_transaction(payee="RIMI", description="LOYALTY BONUS"), rule) == 15


def test_and_with_no_patterns_scores_zero(make_transaction, make_rule) -> None:
    assert score(make_transaction(), make_rule("Empty", pattern_logic="AND", priority=1)) == 0


def test_priority_multiplier(make_transaction, make_rule, wordlist) -> None:
    t = make_transaction(payee="MCDONALDS")
    assert score(t, make_rule("Food", wordlist("MCDONALDS"), priority=1)) == pytest.approx(11)
    assert score(t, make_rule("Food", wordlist("MCDONALDS"), priority=10)) == pytest.approx(20)


def test_final_score_strictly_increases_with_priority(make_transaction, make_rule, wordlist) -> None:
    t = make_transaction(payee="MCDONALDS")
    scores = [score(t, make_rule("Food", wordlist("MCDONALDS"), priority=p)) for p in range(0, 12)]
    assert all(lower < higher for lower, higher in zip(scores, scores[1:]))
    assert priority_multiplier(0) == 1


def test_scores_all_rule_types(make_transaction, make_rule, wordlist) -> None:
    t = make_transaction(payee="ACME PAYROLL", type="debit")
    income = make_rule("Salary", wordlist("PAYROLL"), type="income")
    assert score(t, income) == 10


def test_score_rules_keeps_positive_scores_with_positions(make_transaction, make_rule, wordlist) -> None:
    rules = [
        make_rule("Transport", wordlist("BOLT")),
        make_rule("Food", wordlist("MCDONALDS"), priority=2),
    ]
    scored = score_rules(make_transaction(payee="MCDONALDS"), rules)
    assert len(scored) == 1
    assert scored[0].rule.name == "Food"
    assert scored[0].index == 1
    assert scored[0].raw == 10
    assert scored[0].final == pytest.approx(12)


def test_final_score_has_no_float_noise() -> None:
    assert final_score(30, 7) == 51
    assert final_score(10, 2) == 12
