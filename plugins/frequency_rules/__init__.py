"""Built-in frequency rules -- implementations of the FrequencyRule protocol."""

from core.registry import RuleRegistry
from plugins.frequency_rules.every_day import EveryDayRule
from plugins.frequency_rules.monthly import EndOfMonthRule, OnceMonthlyRule, StartOfMonthRule
from plugins.frequency_rules.once_off import OnceOffRule
from plugins.frequency_rules.weekly import OnceWeeklyRule, WeekdayRule

__all__ = [
    "OnceOffRule",
    "EveryDayRule",
    "OnceWeeklyRule",
    "WeekdayRule",
    "StartOfMonthRule",
    "OnceMonthlyRule",
    "EndOfMonthRule",
    "build_rule_registry",
]


def build_rule_registry(
    weekday_due_date: str = "scheduled",
    start_of_month_due_workdays: int = 5,
    end_of_month_min_workdays: int = 5,
) -> RuleRegistry:
    """Register one rule per frequency family and seal the registry."""
    registry = RuleRegistry()
    registry.register(OnceOffRule())
    registry.register(EveryDayRule())
    registry.register(OnceWeeklyRule())
    registry.register(WeekdayRule(due_date_policy=weekday_due_date))
    registry.register(StartOfMonthRule(due_workdays=start_of_month_due_workdays))
    registry.register(OnceMonthlyRule())
    registry.register(EndOfMonthRule(min_workdays=end_of_month_min_workdays))
    return registry.seal()
