"""Revenue leakage calculator.

Estimates how much leasing revenue a property loses to calls that go
unanswered after hours. Every step of the funnel is a plain percentage of
the previous one:

    after-hours calls/day -> missed calls/month -> qualified leads
    -> tours -> leases -> monthly / annual / lifetime revenue
"""

from pydantic import BaseModel, Field

# Calls are projected over a 30-day month
DAYS_PER_MONTH: int = 30
MONTHS_PER_YEAR: int = 12


class ROIInputs(BaseModel):
    """Leasing metrics entered by the visitor."""

    total_calls: float = Field(20, ge=0)  # Total calls per day
    after_hours_percent: float = Field(60, ge=0, le=100)
    lead_quality_rate: float = Field(20, ge=0, le=100)
    lead_to_tour_rate: float = Field(25, ge=0, le=100)
    tour_to_lease_rate: float = Field(35, ge=0, le=100)
    average_rent: float = Field(1500, ge=0)  # Monthly rent in USD
    average_stay_duration: float = Field(2, ge=0)  # Years


class ROIResults(BaseModel):
    """Projected losses from missed after-hours calls."""

    monthly_calls: float
    qualified_leads: float
    tours_lost: float
    leases_lost: float
    monthly_loss: float
    annual_loss: float
    lifetime_loss: float
    # Display strings keyed like the numeric fields
    formatted: dict[str, str] = Field(default_factory=dict)


def calculate_revenue_leakage(inputs: ROIInputs) -> ROIResults:
    """Run the leakage funnel for a set of leasing metrics."""
    daily_after_hours_calls = inputs.total_calls * (inputs.after_hours_percent / 100)
    monthly_missed_calls = daily_after_hours_calls * DAYS_PER_MONTH
    qualified_leads_lost = monthly_missed_calls * (inputs.lead_quality_rate / 100)
    tours_lost = qualified_leads_lost * (inputs.lead_to_tour_rate / 100)
    leases_lost = tours_lost * (inputs.tour_to_lease_rate / 100)
    monthly_revenue_loss = leases_lost * inputs.average_rent
    annual_impact = monthly_revenue_loss * MONTHS_PER_YEAR
    lifetime_value_loss = annual_impact * inputs.average_stay_duration

    counts = {
        "monthly_calls": monthly_missed_calls,
        "qualified_leads": qualified_leads_lost,
        "tours_lost": tours_lost,
        "leases_lost": leases_lost,
    }
    losses = {
        "monthly_loss": monthly_revenue_loss,
        "annual_loss": annual_impact,
        "lifetime_loss": lifetime_value_loss,
    }
    formatted = {key: format_number(value) for key, value in counts.items()}
    formatted.update({key: format_currency(value) for key, value in losses.items()})

    return ROIResults(**counts, **losses, formatted=formatted)


def format_currency(amount: float) -> str:
    """Format a dollar amount with no decimals, e.g. ``$1,890``."""
    return f"${amount:,.0f}"


def format_number(value: float) -> str:
    """Format a count with exactly one decimal, e.g. ``1,234.5``."""
    return f"{value:,.1f}"
