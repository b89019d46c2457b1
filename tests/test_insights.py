from finsync.core.config import Settings
from finsync.models.alert import Severity
from finsync.utils.aggregator import aggregate_balances
from finsync.utils.insights import DEFAULT_RULES, InsightFacts, InsightRule, generate_insights
from conftest import NOW, hours_ago, make_account


def insights_for(accounts, **kwargs):
    facts = InsightFacts.from_accounts(accounts, now=NOW, **kwargs)
    return {i.id: i for i in generate_insights(facts)}


def test_empty_accounts_produce_no_insights():
    assert generate_insights(InsightFacts.from_accounts([], now=NOW)) == []


def test_high_credit_utilization_fires_at_ninety_percent():
    insights = insights_for([make_account("c1", "credit", -180, creditLimit=200)])
    assert "high-credit-utilization" in insights
    assert insights["high-credit-utilization"].severity == Severity.ERROR
    assert insights["high-credit-utilization"].count == 1


def test_high_credit_utilization_quiet_at_twenty_five_percent():
    insights = insights_for([make_account("c1", "credit", -50, creditLimit=200)])
    assert "high-credit-utilization" not in insights


def test_credit_limit_falls_back_to_configured_default():
    card = make_account("c1", "credit", -850)
    assert "high-credit-utilization" in insights_for([card])
    assert "high-credit-utilization" not in insights_for([card], settings=Settings(DEFAULT_CREDIT_LIMIT=5000))


def test_stale_accounts_warning_with_sync_action():
    accounts = [
        make_account("a1", "checking", 100, last_updated=hours_ago(80)),
        make_account("a2", "savings", 100, last_updated=hours_ago(100)),
        make_account("a3", "savings", 100, last_updated=hours_ago(30)),
    ]
    stale = insights_for(accounts)["stale-accounts"]
    assert stale.severity == Severity.WARNING
    assert stale.count == 2
    assert stale.action.label == "Sync Accounts"
    assert stale.description.startswith("2 accounts")


def test_positive_net_worth_and_emergency_fund():
    accounts = [
        make_account("a1", "checking", 2000),
        make_account("a2", "savings", 5000),
    ]
    insights = insights_for(accounts)
    assert insights["positive-net-worth"].severity == Severity.SUCCESS
    assert insights["positive-net-worth"].amount == 7000
    assert insights["emergency-fund"].amount == 18000
    assert "diversification" not in insights


def test_emergency_fund_quiet_when_savings_cover_target():
    insights = insights_for([make_account("a1", "savings", 20000)])
    assert "emergency-fund" not in insights


def test_diversification_nudge_for_single_type():
    accounts = [make_account("a1", "checking", 10), make_account("a2", "checking", 20)]
    assert insights_for(accounts)["diversification"].severity == Severity.INFO
    assert "diversification" not in insights_for(accounts[:1])


def test_negative_net_worth_has_no_success_insight():
    insights = insights_for([make_account("l1", "loan", -20000)])
    assert "positive-net-worth" not in insights


def test_failing_rule_is_skipped():
    def explode(facts):
        raise ZeroDivisionError

    rules = (InsightRule(id="broken", applies=explode, produce=explode),) + tuple(DEFAULT_RULES)
    accounts = [make_account("a1", "checking", 100)]
    facts = InsightFacts(accounts=accounts, balances=aggregate_balances(accounts), now=NOW)

    ids = [i.id for i in generate_insights(facts, rules)]
    assert "broken" not in ids
    assert "positive-net-worth" in ids


def test_insight_serialization_drops_empty_fields():
    data = insights_for([make_account("c1", "credit", -180, creditLimit=200)])["high-credit-utilization"].to_dict()
    assert data["severity"] == "error"
    assert "action" not in data
    assert "amount" not in data
