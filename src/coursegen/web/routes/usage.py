"""Usage report endpoint."""

from fastapi import APIRouter, Query

from coursegen.web.schemas import UsageBreakdownSchema, UsageResponse, UsageSummarySchema
from coursegen.web.services import get_services

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("", response_model=UsageResponse)
def get_usage(days: int = Query(default=30, ge=1, le=365)) -> UsageResponse:
    """AI usage over the last N days."""
    ledger = get_services().ledger

    summary = ledger.summary(days)
    return UsageResponse(
        days=days,
        summary=UsageSummarySchema(
            total_requests=summary.total_requests,
            total_tokens_in=summary.total_tokens_in,
            total_tokens_out=summary.total_tokens_out,
            total_credits=summary.total_credits,
        ),
        daily=[UsageBreakdownSchema(**vars(row)) for row in ledger.daily_breakdown(days)],
        by_action=[UsageBreakdownSchema(**vars(row)) for row in ledger.by_action(days)],
        by_user=[UsageBreakdownSchema(**vars(row)) for row in ledger.by_user(days)],
    )
