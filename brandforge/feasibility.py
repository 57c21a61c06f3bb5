from typing import Dict, List
from urllib.parse import quote_plus

from brandforge.schemas import BudgetPlan, BudgetSummary, CategoryTotal

SEARCH_URL = "https://www.google.com/search?q="


def correct_feasibility(plan: BudgetPlan, user_budget: float) -> BudgetPlan:
    """
    Recompute the feasibility verdict from the plan's own numbers.

    The model sometimes returns an ``isFeasible`` flag that contradicts its
    ``suggestedMinimumBudget``; the numbers win.
    """
    minimum = plan.suggested_minimum_budget
    return plan.model_copy(
        update={
            "is_feasible": user_budget >= minimum,
            "missing_budget": max(0.0, minimum - user_budget),
        }
    )


def summarize_budget(plan: BudgetPlan, user_budget: float, top: int = 3) -> BudgetSummary:
    totals: Dict[str, float] = {}
    for item in plan.items:
        totals[item.category] = totals.get(item.category, 0.0) + item.cost

    total_cost = sum(totals.values())

    # sorted() is stable, so equal totals keep first-seen order
    categories: List[CategoryTotal] = [
        CategoryTotal(
            name=name,
            value=value,
            share=value / total_cost if total_cost else 0.0,
        )
        for name, value in sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    ]

    minimum = plan.suggested_minimum_budget
    if minimum > 0:
        progress = min(user_budget / minimum * 100, 100.0)
    else:
        progress = 100.0

    links = {
        index: SEARCH_URL + quote_plus(item.search_query)
        for index, item in enumerate(plan.items)
        if item.search_query
    }

    return BudgetSummary(
        categories=categories,
        top_costs=categories[:top],
        total_item_cost=total_cost,
        funding_progress=progress,
        search_links=links,
    )
