"""
Negotiation turn endpoints.

WHAT: Automated seller replies and rolling context inspection
WHY: The chat layer calls in per buyer turn and may inspect engine memory
HOW: FastAPI router delegating to NegotiationService and the context store
"""

from fastapi import APIRouter, Depends

from ...deps import get_engine
from ....core.engine import EngineContainer
from ....models.api_schemas import ContextResponse, ErrorResponse, RespondRequest, TurnResponse
from ....utils.exceptions import ContextNotFoundError
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse}}


@router.post("/negotiations/{negotiation_id}/respond", response_model=TurnResponse,
             responses={**NOT_FOUND, 422: {"model": ErrorResponse}})
async def respond(
    negotiation_id: str,
    request: RespondRequest,
    engine: EngineContainer = Depends(get_engine)
):
    """
    Produce the automated reply for a buyer turn.

    The provider's reply is interpreted into a decision; if the provider
    fails a fallback decision is used. Either way the reply is appended to
    the negotiation's history.
    """
    result = await engine.negotiations.respond(
        negotiation_id,
        request.user_message,
        personality=request.personality,
        urgency=request.urgency,
        user_id=request.user_id,
    )
    return TurnResponse(
        negotiation_id=negotiation_id,
        scenario=result.scenario,
        prompt_id=result.prompt_id,
        decision=result.decision,
        message=result.message,
    )


@router.get("/negotiations/{negotiation_id}/context", response_model=ContextResponse, responses=NOT_FOUND)
async def get_context(negotiation_id: str, engine: EngineContainer = Depends(get_engine)):
    """
    Rolling decision context for a negotiation.

    Raises:
        ContextNotFoundError: No decision recorded yet, or the context expired
    """
    exported = engine.store.export(negotiation_id)
    if exported is None:
        raise ContextNotFoundError(negotiation_id)

    negotiation = await engine.repository.load_negotiation(negotiation_id)
    return ContextResponse(
        negotiation_id=negotiation_id,
        phase=engine.store.negotiation_phase(negotiation_id, negotiation.max_rounds),
        summary=engine.store.conversation_summary(negotiation_id) or {},
        context=exported,
    )
