"""
FinScope — Financial Planning Engine

Portfolio allocation, retirement needs, emergency fund, house down-payment,
goal tracking, change impact and a 0–100 financial health score.
Pure domain logic: every method is a deterministic function of its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic.alias_generators import to_camel

from finscope.errors import ValidationFailed
from finscope.models import InvestmentGoal, Profile, RiskTolerance

MAX_SCENARIOS = 10
MAX_PROJECTION_YEARS = 30


@dataclass(frozen=True)
class PlanningAssumptions:
    """Long-run market and tax assumptions (nominal, annual)."""

    inflation: float = 0.025
    returns: dict = field(default_factory=lambda: {"stocks": 0.10, "bonds": 0.04, "realEstate": 0.08, "cash": 0.02})
    volatility: dict = field(default_factory=lambda: {"stocks": 0.20, "bonds": 0.05, "realEstate": 0.15, "cash": 0.01})
    marginal_tax: float = 0.22
    capital_gains_tax: float = 0.15
    retirement_tax: float = 0.12


RISK_FACTORS = {
    RiskTolerance.CONSERVATIVE: 0.7,
    RiskTolerance.MODERATE: 1.0,
    RiskTolerance.AGGRESSIVE: 1.3,
}

# (stocks, bonds, cash) percentage-point adjustments per goal
GOAL_DELTAS = {
    InvestmentGoal.RETIREMENT: (0, 5, 0),
    InvestmentGoal.HOUSE: (-10, 5, 5),
    InvestmentGoal.EDUCATION: (-5, 0, 5),
    InvestmentGoal.EMERGENCY_FUND: (-20, 10, 10),
    InvestmentGoal.WEALTH_BUILDING: (5, -5, 0),
}

EMERGENCY_RISK_MONTHS = {
    RiskTolerance.CONSERVATIVE: 2,
    RiskTolerance.MODERATE: 0,
    RiskTolerance.AGGRESSIVE: -2,
}


class ProfileField(str, Enum):
    """Profile attributes with dedicated change-impact insights."""

    AGE = "age"
    INCOME = "income"
    CURRENT_SAVINGS = "currentSavings"
    MONTHLY_EXPENSES = "monthlyExpenses"
    RISK_TOLERANCE = "riskTolerance"
    OTHER = "other"

    @classmethod
    def parse(cls, name: str) -> "ProfileField":
        camel = to_camel(name) if "_" in (name or "") else (name or "")
        for member in cls:
            if member.value == camel:
                return member
        return cls.OTHER


def _clamp(lo: float, hi: float, value: float) -> float:
    return max(lo, min(hi, value))


def _grade(score: float) -> str:
    if score >= 90:
        return "A+"
    if score >= 80:
        return "A"
    if score >= 70:
        return "B"
    if score >= 60:
        return "C"
    if score >= 50:
        return "D"
    return "F"


def _delta(old: Any, new: Any) -> dict:
    out = {"old": old, "new": new}
    if isinstance(old, (int, float)) and isinstance(new, (int, float)) and not isinstance(old, bool):
        out["change"] = round(new - old, 2)
    else:
        out["changed"] = old != new
    return out


class PlanningEngine:
    """Deterministic planning calculations over a sanitized ``Profile``."""

    def __init__(self, assumptions: Optional[PlanningAssumptions] = None):
        self.assumptions = assumptions or PlanningAssumptions()

    # ── Portfolio ──

    def portfolio_allocation(self, profile: Profile) -> dict:
        """Integer allocation summing to 100 with expected return and volatility."""
        stock_delta, bond_delta, cash_delta = GOAL_DELTAS[profile.investment_goal]

        stocks = max(60, 120 - profile.age) * RISK_FACTORS[profile.risk_tolerance]
        stocks = round(min(90, stocks))
        stocks = int(_clamp(0, 90, stocks + stock_delta))
        bonds = int(round(_clamp(5, 50, (100 - stocks) * 0.7 + bond_delta)))
        real_estate = int(_clamp(5, 20, 12 if profile.income > 100_000 else 8))
        cash = 100 - (stocks + bonds + real_estate + cash_delta)

        cash = max(0, cash)
        total = stocks + bonds + real_estate + cash
        if total != 100:
            scale = 100 / total
            stocks = int(stocks * scale)
            bonds = int(bonds * scale)
            real_estate = int(real_estate * scale)
            cash = 100 - (stocks + bonds + real_estate)

        allocation = {"stocks": stocks, "bonds": bonds, "realEstate": real_estate, "cash": cash}
        expected = sum(allocation[k] / 100 * self.assumptions.returns[k] for k in allocation) * 100
        vol = sum(allocation[k] / 100 * self.assumptions.volatility[k] for k in allocation) * 100
        if vol < 8:
            risk_level = "Low"
        elif vol < 15:
            risk_level = "Medium"
        else:
            risk_level = "High"
        return {
            "allocation": allocation,
            "expectedReturn": round(expected, 1),
            "volatility": round(vol, 1),
            "riskLevel": risk_level,
        }

    # ── Retirement ──

    def replacement_ratio(self, profile: Profile) -> float:
        if profile.monthly_expenses > 0 and profile.income > 0:
            ratio = _clamp(0.6, 0.9, 12 * profile.monthly_expenses / profile.income)
        else:
            ratio = 0.8
        if profile.income > 150_000:
            ratio *= 0.85
        elif profile.income < 50_000:
            ratio *= 1.10
        return ratio

    @staticmethod
    def withdrawal_rate(years: int) -> float:
        if years >= 30:
            return 0.04
        if years >= 20:
            return 0.035
        return 0.03

    def monthly_available(self, profile: Profile) -> float:
        monthly_income = profile.income / 12
        if profile.monthly_expenses > 0:
            return monthly_income - profile.monthly_expenses
        return monthly_income * 0.2

    def retirement_needs(self, profile: Profile, external_assets: float = 0.0) -> dict:
        years = profile.years
        ratio = self.replacement_ratio(profile)
        annual_need = profile.income * ratio
        if profile.monthly_expenses > 0:
            annual_need = min(annual_need, 12 * profile.monthly_expenses)
        effective_ratio = annual_need / profile.income if profile.income > 0 else ratio
        inflated_need = annual_need * (1 + self.assumptions.inflation) ** years
        withdrawal = self.withdrawal_rate(years)
        required = inflated_need / withdrawal / (1 - self.assumptions.retirement_tax)

        r = self.portfolio_allocation(profile)["expectedReturn"] / 100
        projected = (profile.current_savings + external_assets) * (1 + r) ** years
        shortfall = max(0.0, required - projected)
        if shortfall <= 0:
            annual_needed = 0.0
        elif r > 0:
            annual_needed = shortfall * r / ((1 + r) ** years - 1)
        else:
            annual_needed = shortfall / years
        monthly_needed = annual_needed / 12

        available = self.monthly_available(profile)
        if monthly_needed > 0:
            feasibility = int(_clamp(0, 100, round(100 * available / monthly_needed)))
        else:
            feasibility = 100

        return {
            "yearsToRetirement": years,
            "replacementRatio": round(effective_ratio, 4),
            "baseReplacementRatio": round(ratio, 4),
            "targetRetirementIncome": round(annual_need),
            "inflationAdjustedIncome": round(inflated_need),
            "withdrawalRate": withdrawal,
            "requiredNestEgg": round(required),
            "currentProjectedValue": round(projected),
            "shortfall": round(shortfall),
            "annualSavingsNeeded": round(annual_needed),
            "monthlySavingsNeeded": round(monthly_needed),
            "monthlyAvailable": round(available),
            "feasibilityScore": feasibility,
            "isRealistic": available >= 0.8 * monthly_needed,
        }

    # ── Emergency Fund / House ──

    def emergency_fund(self, profile: Profile, monthly_expenses: Optional[float] = None) -> dict:
        expenses = profile.monthly_expenses if monthly_expenses is None else monthly_expenses
        months = 6 + EMERGENCY_RISK_MONTHS[profile.risk_tolerance]
        if profile.income > 150_000:
            months -= 1
        elif profile.income < 50_000:
            months += 1
        amount = expenses * months
        return {
            "recommendedMonths": months,
            "recommendedAmount": round(amount),
            "highYieldSavings": round(amount * 0.7),
            "liquidInvestments": round(amount * 0.3),
        }

    def house_plan(self, profile: Profile) -> Optional[dict]:
        if profile.investment_goal != InvestmentGoal.HOUSE:
            return None
        years = profile.years
        price = profile.target_home_price or profile.income * 4
        pct = 0.20 if profile.income > 100_000 else 0.15
        down_payment = price * pct
        closing = price * 0.03
        annual = 0.06 if years > 5 else 0.04
        r = annual / 12
        months = years * 12
        grown_savings = profile.current_savings * (1 + r) ** months
        needed = max(0.0, down_payment + closing - grown_savings)
        monthly = needed * r / ((1 + r) ** months - 1) if needed > 0 else 0.0
        return {
            "targetHomePrice": round(price),
            "downPaymentPercent": round(pct * 100),
            "downPaymentAmount": round(down_payment),
            "closingCosts": round(closing),
            "totalNeeded": round(down_payment + closing),
            "expectedReturn": annual,
            "monthlyContribution": round(monthly),
            "timeframeYears": years,
        }

    # ── Recommendations / Health ──

    def recommendations(self, profile: Profile, emergency: dict, retirement: dict, house: Optional[dict]) -> list[dict]:
        recs = []
        liquid = profile.current_savings * 0.8
        if liquid < emergency["recommendedAmount"]:
            recs.append({
                "type": "emergency_fund",
                "priority": "high",
                "title": "Build Emergency Fund",
                "action": f"Save {emergency['recommendedAmount'] - liquid:,.0f} more",
                "impact": "Essential financial safety net",
            })
        if not retirement["isRealistic"]:
            recs.append({
                "type": "retirement",
                "priority": "high",
                "title": "Increase Retirement Savings",
                "action": f"Save {retirement['monthlySavingsNeeded']:,} monthly",
                "impact": "Secure retirement future",
            })
        if house is not None and house["monthlyContribution"] > 0:
            recs.append({
                "type": "house",
                "priority": "medium",
                "title": "Down Payment Savings",
                "action": f"Set aside {house['monthlyContribution']:,} monthly for {house['timeframeYears']} years",
                "impact": f"Reach a {house['downPaymentPercent']}% down payment plus closing costs",
            })
        if profile.income > 0:
            rate = self.monthly_available(profile) / (profile.income / 12)
            if rate < 0.2:
                recs.append({
                    "type": "savings_rate",
                    "priority": "medium",
                    "title": "Improve Savings Rate",
                    "action": f"Raise savings from {max(rate, 0):.0%} toward 20% of income",
                    "impact": "Faster progress on every goal",
                })
        return recs

    def health_score(self, profile: Profile, emergency: dict, retirement: dict) -> dict:
        factors = []

        liquid = profile.current_savings * 0.8
        recommended = emergency["recommendedAmount"]
        emergency_ratio = liquid / recommended if recommended > 0 else 1.0
        emergency_score = 20 * min(1.0, emergency_ratio)
        factors.append({
            "category": "Emergency Fund",
            "score": round(emergency_score),
            "maxScore": 20,
            "description": f"{round(emergency_ratio * 100)}% of recommended emergency fund",
        })

        required = retirement["requiredNestEgg"]
        retirement_ratio = retirement["currentProjectedValue"] / required if required > 0 else 1.0
        retirement_score = 25 * min(1.0, retirement_ratio)
        factors.append({
            "category": "Retirement Readiness",
            "score": round(retirement_score),
            "maxScore": 25,
            "description": f"{round(retirement_ratio * 100)}% of retirement goal",
        })

        monthly_income = profile.income / 12
        if monthly_income > 0:
            savings_rate = max(0.0, (monthly_income - profile.monthly_expenses) / monthly_income)
            debt_ratio = max(0.0, (profile.monthly_expenses - 0.7 * monthly_income) / monthly_income)
        else:
            savings_rate = 0.0
            debt_ratio = 1.0 if profile.monthly_expenses > 0 else 0.0
        debt_score = max(0.0, 20 - debt_ratio * 40)
        factors.append({
            "category": "Debt Management",
            "score": round(debt_score),
            "maxScore": 20,
            "description": "Healthy spending pattern" if savings_rate > 0.2 else "Consider reducing expenses",
        })

        savings_score = min(20.0, savings_rate * 40)
        factors.append({
            "category": "Savings Rate",
            "score": round(savings_score),
            "maxScore": 20,
            "description": f"{round(savings_rate * 100)}% of income available for savings",
        })

        diversification = 15
        factors.append({
            "category": "Portfolio Diversification",
            "score": diversification,
            "maxScore": 15,
            "description": "Following the recommended allocation",
        })

        total = _clamp(0, 100, emergency_score + retirement_score + debt_score + savings_score + diversification)
        return {"totalScore": round(total), "maxScore": 100, "grade": _grade(total), "factors": factors}

    def projections(self, profile: Profile, portfolio: dict, retirement: dict) -> list[dict]:
        initial = profile.current_savings or 10_000
        monthly = retirement["monthlySavingsNeeded"]
        annual_return = portfolio["expectedReturn"] / 100
        rows = []
        for year in range(1, min(profile.years, MAX_PROJECTION_YEARS) + 1):
            contributions = initial + monthly * 12 * year
            growth = (1 + annual_return) ** year
            if annual_return > 0:
                value = initial * growth + monthly * 12 * (growth - 1) / annual_return
            else:
                value = contributions
            rows.append({
                "year": year,
                "age": profile.age + year,
                "totalContributions": round(contributions),
                "projectedValue": round(value),
                "gains": round(value - contributions),
            })
        return rows

    # ── Plan ──

    def generate_plan(self, profile: Profile) -> dict:
        portfolio = self.portfolio_allocation(profile)
        retirement = self.retirement_needs(profile)
        emergency = self.emergency_fund(profile)
        house = self.house_plan(profile)
        plan = {
            "profile": profile.to_dict(),
            "portfolioAnalysis": portfolio,
            "retirementPlan": retirement,
            "emergencyFund": emergency,
            "currentFinancials": {
                "totalAssets": round(profile.current_savings),
                "monthlyExpenses": round(profile.monthly_expenses),
                "monthlySavings": round(profile.monthly_savings),
                "monthlyAvailable": round(self.monthly_available(profile)),
            },
            "recommendations": self.recommendations(profile, emergency, retirement, house),
            "healthScore": self.health_score(profile, emergency, retirement),
            "projections": self.projections(profile, portfolio, retirement),
        }
        if house is not None:
            plan["housePlan"] = house
        return plan

    def key_metrics(self, plan: dict) -> dict:
        return {
            "expectedReturn": plan["portfolioAnalysis"]["expectedReturn"],
            "volatility": plan["portfolioAnalysis"]["volatility"],
            "riskLevel": plan["portfolioAnalysis"]["riskLevel"],
            "stocks": plan["portfolioAnalysis"]["allocation"]["stocks"],
            "requiredNestEgg": plan["retirementPlan"]["requiredNestEgg"],
            "monthlySavingsNeeded": plan["retirementPlan"]["monthlySavingsNeeded"],
            "feasibilityScore": plan["retirementPlan"]["feasibilityScore"],
            "emergencyFundTarget": plan["emergencyFund"]["recommendedAmount"],
            "healthScore": plan["healthScore"]["totalScore"],
            "grade": plan["healthScore"]["grade"],
        }

    # ── Goal Tracking ──

    def project_goal(
        self,
        current_savings: float,
        monthly_contribution: float,
        target_amount: float,
        years: int,
        expected_return: float,
    ) -> dict:
        """Month-by-month growth with end-of-month contributions.

        The final value equals ``P·(1+r)^M + C·((1+r)^M − 1)/r``.
        """
        if target_amount <= 0 or years <= 0:
            raise ValidationFailed("Target amount and timeframe must be positive values")
        r = expected_return / 100 / 12
        months = years * 12
        value = current_savings
        milestones = []
        for month in range(1, months + 1):
            value = value * (1 + r) + monthly_contribution
            if month % 12 == 0 or month == months:
                milestones.append({
                    "month": month,
                    "year": -(-month // 12),
                    "projectedValue": round(value),
                    "progressPercent": round(value / target_amount * 100),
                    "onTrack": value >= target_amount * month / months,
                })

        will_reach = value >= target_amount
        shortfall = max(0.0, target_amount - value)
        if shortfall <= 0:
            additional = 0.0
        elif r > 0:
            additional = shortfall * r / ((1 + r) ** months - 1)
        else:
            additional = shortfall / months
        return {
            "currentSavings": current_savings,
            "monthlyContribution": monthly_contribution,
            "targetAmount": target_amount,
            "timeframe": years,
            "projectedFinalValue": round(value),
            "willReachGoal": will_reach,
            "shortfall": round(shortfall),
            "additionalMonthlyNeeded": round(additional),
            "monthlyProgress": milestones,
            "expectedReturn": expected_return,
        }

    def track(self, profile: Profile, target_amount: float, timeframe: int) -> dict:
        """Track a goal using the profile's own savings and contribution."""
        expected = self.portfolio_allocation(profile)["expectedReturn"]
        result = self.project_goal(profile.current_savings, profile.monthly_savings, target_amount, timeframe, expected)
        return {
            "currentAmount": result["currentSavings"],
            "monthlyContribution": result["monthlyContribution"],
            "targetAmount": target_amount,
            "timeframe": timeframe,
            "projectedValue": result["projectedFinalValue"],
            "shortfall": result["shortfall"],
            "requiredMonthlyContribution": result["additionalMonthlyNeeded"],
            "willReachGoal": result["willReachGoal"],
            "expectedReturn": expected,
        }

    def track_detailed(
        self,
        profile: Profile,
        current_savings: float,
        monthly_contribution: float,
        target_amount: float,
        timeframe: int,
    ) -> dict:
        expected = self.portfolio_allocation(profile)["expectedReturn"]
        return self.project_goal(
            max(0.0, current_savings), max(0.0, monthly_contribution), target_amount, timeframe, expected
        )

    # ── Change Impact ──

    def _impact(self, old: Profile, new: Profile) -> tuple[dict, dict, dict, dict, dict]:
        old_portfolio, new_portfolio = self.portfolio_allocation(old), self.portfolio_allocation(new)
        old_retirement, new_retirement = self.retirement_needs(old), self.retirement_needs(new)
        impact = {
            "portfolioChange": {
                "stocks": _delta(old_portfolio["allocation"]["stocks"], new_portfolio["allocation"]["stocks"]),
                "expectedReturn": _delta(old_portfolio["expectedReturn"], new_portfolio["expectedReturn"]),
                "volatility": _delta(old_portfolio["volatility"], new_portfolio["volatility"]),
                "riskLevel": _delta(old_portfolio["riskLevel"], new_portfolio["riskLevel"]),
            },
            "retirementChange": {
                "requiredNestEgg": _delta(old_retirement["requiredNestEgg"], new_retirement["requiredNestEgg"]),
                "monthlySavingsNeeded": _delta(
                    old_retirement["monthlySavingsNeeded"], new_retirement["monthlySavingsNeeded"]
                ),
                "feasibilityScore": _delta(old_retirement["feasibilityScore"], new_retirement["feasibilityScore"]),
            },
        }
        return impact, old_portfolio, new_portfolio, old_retirement, new_retirement

    def analyze_change(self, field_name: str, value: Any, profile: Profile) -> dict:
        """Impact of changing one profile attribute, with field-specific insights."""
        target = ProfileField.parse(field_name)
        new_profile = profile.with_changes({field_name: value})
        impact, old_p, new_p, old_r, new_r = self._impact(profile, new_profile)

        if target == ProfileField.AGE:
            stock_change = new_p["allocation"]["stocks"] - old_p["allocation"]["stocks"]
            savings_change = new_r["monthlySavingsNeeded"] - old_r["monthlySavingsNeeded"]
            insights = [
                f"Portfolio allocation shifted to {new_p['allocation']['stocks']}% stocks "
                f"({'more' if stock_change > 0 else 'less'} aggressive)",
                f"Expected return changed by {new_p['expectedReturn'] - old_p['expectedReturn']:.1f}%",
                f"Monthly retirement savings {'increased' if savings_change > 0 else 'decreased'} "
                f"by {abs(savings_change):,}",
            ]
        elif target == ProfileField.INCOME:
            pct = (new_profile.income - profile.income) / profile.income * 100 if profile.income else 0.0
            goal_change = new_r["requiredNestEgg"] - old_r["requiredNestEgg"]
            score_change = new_r["feasibilityScore"] - old_r["feasibilityScore"]
            insights = [
                f"Income {'increased' if pct > 0 else 'decreased'} by {abs(pct):.1f}%",
                f"Retirement goal {'increased' if goal_change > 0 else 'decreased'} by {abs(goal_change):,}",
                f"Goal feasibility score: {new_r['feasibilityScore']}/100 ({score_change:+d})",
            ]
        elif target == ProfileField.CURRENT_SAVINGS:
            savings_delta = new_profile.current_savings - profile.current_savings
            need_change = new_r["monthlySavingsNeeded"] - old_r["monthlySavingsNeeded"]
            insights = [
                f"Current savings {'increased' if savings_delta > 0 else 'decreased'} by {abs(savings_delta):,.0f}",
                f"Monthly savings needed {'reduced' if need_change < 0 else 'increased'} by {abs(need_change):,}",
                f"You're now {new_r['feasibilityScore']}% on track for retirement",
            ]
        elif target == ProfileField.MONTHLY_EXPENSES:
            old_e, new_e = self.emergency_fund(profile), self.emergency_fund(new_profile)
            fund_change = new_e["recommendedAmount"] - old_e["recommendedAmount"]
            insights = [
                f"Emergency fund target {'increased' if fund_change > 0 else 'decreased'} by {abs(fund_change):,}",
                f"Available for saving: {new_r['monthlyAvailable']:,}/month",
                f"Retirement feasibility: {'Realistic' if new_r['isRealistic'] else 'Challenging'} "
                f"({new_r['feasibilityScore']}/100)",
            ]
        elif target == ProfileField.RISK_TOLERANCE:
            insights = [
                f"Switched to {new_profile.risk_tolerance.value} risk profile",
                f"Expected return {'increased' if new_p['expectedReturn'] > old_p['expectedReturn'] else 'decreased'} "
                f"to {new_p['expectedReturn']}%",
                f"Portfolio volatility: {new_p['volatility']}% ({new_p['riskLevel']} risk)",
            ]
        else:
            insights = ["Profile updated"]

        return {
            "field": target.value if target != ProfileField.OTHER else field_name,
            "oldValue": profile.to_dict().get(to_camel(field_name) if "_" in field_name else field_name),
            "newValue": new_profile.to_dict().get(to_camel(field_name) if "_" in field_name else field_name),
            "newProfile": new_profile.to_dict(),
            **impact,
            "insights": insights,
        }

    def analyze_changes(self, changes: dict, profile: Profile) -> dict:
        """Before/after comparison for several attributes at once."""
        if not isinstance(changes, dict) or not changes:
            raise ValidationFailed("Changes and current profile are required")
        new_profile = profile.with_changes(changes)
        before = self.key_metrics(self.generate_plan(profile))
        after = self.key_metrics(self.generate_plan(new_profile))
        return {
            "changes": changes,
            "newProfile": new_profile.to_dict(),
            "impact": {
                name: {
                    "before": before[name],
                    "after": after[name],
                    **({"change": round(after[name] - before[name], 2)}
                       if isinstance(before[name], (int, float)) else {"changed": before[name] != after[name]}),
                }
                for name in before
            },
        }

    def simulate(self, scenarios: list[dict], base_profile: Profile) -> dict:
        """Base plan plus one plan per named what-if scenario."""
        if not isinstance(scenarios, list) or not scenarios:
            raise ValidationFailed("At least one scenario is required")
        if len(scenarios) > MAX_SCENARIOS:
            raise ValidationFailed(f"Maximum {MAX_SCENARIOS} scenarios allowed per request")

        base = self.key_metrics(self.generate_plan(base_profile))
        results = []
        for i, scenario in enumerate(scenarios):
            if not isinstance(scenario, dict):
                raise ValidationFailed(f"Scenario {i + 1} must be an object")
            name = str(scenario.get("name") or f"Scenario {i + 1}")
            changes = scenario.get("changes") or {}
            if not isinstance(changes, dict):
                raise ValidationFailed(f"Scenario '{name}' changes must be an object")
            profile = base_profile.with_changes(changes)
            metrics = self.key_metrics(self.generate_plan(profile))
            results.append({
                "name": name,
                "changes": changes,
                "profile": profile.to_dict(),
                "metrics": metrics,
                "deltas": {
                    k: round(metrics[k] - base[k], 2)
                    for k in metrics
                    if isinstance(metrics[k], (int, float)) and not isinstance(metrics[k], bool)
                },
            })

        best = max(results, key=lambda s: (s["metrics"]["healthScore"], s["metrics"]["feasibilityScore"]))
        return {
            "baseProfile": base_profile.to_dict(),
            "baseMetrics": base,
            "scenarios": results,
            "bestScenario": best["name"],
        }
