"""
Insight and report endpoints.

WHAT: Analytics over a negotiation's full message history
WHY: Dashboards need sentiment, behavior, performance and prediction views
HOW: FastAPI router delegating to AnalyticsService
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...deps import get_engine
from ....core.engine import EngineContainer
from ....models.api_schemas import ComparisonRequest, ErrorResponse

router = APIRouter(responses={404: {"model": ErrorResponse}, 400: {"model": ErrorResponse}})


@router.get("/negotiations/{negotiation_id}/insights")
async def get_insights(
    negotiation_id: str,
    types: Optional[List[str]] = Query(default=None, description="Subset of insight types"),
    engine: EngineContainer = Depends(get_engine)
):
    """All insight bundles, or the requested subset."""
    return await engine.analytics.insights(negotiation_id, types)


@router.get("/negotiations/{negotiation_id}/insights/{insight_type}")
async def get_insight(
    negotiation_id: str,
    insight_type: str,
    engine: EngineContainer = Depends(get_engine)
):
    """A single insight bundle."""
    return await engine.analytics.insight(negotiation_id, insight_type)


@router.get("/negotiations/{negotiation_id}/reports/{report_type}")
async def get_report(
    negotiation_id: str,
    report_type: str,
    engine: EngineContainer = Depends(get_engine)
):
    """Summary or detailed report."""
    return await engine.analytics.report(negotiation_id, report_type)


@router.post("/reports/comparison")
async def compare_negotiations(
    request: ComparisonRequest,
    engine: EngineContainer = Depends(get_engine)
):
    """Side-by-side comparison of several negotiations."""
    return await engine.analytics.compare(request.negotiation_ids)
