"""
Negotiation turn orchestration.

WHAT: Produce the automated reply for one buyer turn
WHY: Ties prompt rendering, the provider call, interpretation and history together
HOW: load negotiation -> build context -> read history -> render prompt ->
     complete under timeout -> interpret, or fall back on provider failure ->
     record -> append outbound message
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from ..core.config import settings
from ..core.repository import MessageHistoryProvider, NegotiationStore
from ..llm.completion import CompletionFailure, TextCompletionClient
from ..models.decision import Action, Decision
from ..models.message import Message, MessageType, Sender
from ..models.negotiation import InterpretationContext, Personality, Urgency
from ..services.fallback_responder import FallbackResponder
from ..services.prompt_builder import detect_scenario, render_negotiation_prompt
from ..services.response_interpreter import ResponseInterpreter
from ..utils.logger import get_logger

logger = get_logger(__name__)

ACTION_MESSAGE_TYPES = {
    Action.ACCEPT: MessageType.ACCEPTANCE,
    Action.REJECT: MessageType.REJECTION,
    Action.COUNTER: MessageType.COUNTER_OFFER,
    Action.CONTINUE: MessageType.MESSAGE,
}


@dataclass
class TurnResult:
    """Decision for a turn and the message appended to history."""
    decision: Decision
    message: Message
    scenario: str
    prompt_id: str


def decision_to_message(decision: Decision) -> Message:
    """Outbound history message for a decision."""
    return Message(
        sender=Sender.AUTOMATED_AGENT,
        content=decision.content,
        type=ACTION_MESSAGE_TYPES[decision.action],
        offer=decision.offer.model_copy(update={"source": None}) if decision.offer else None,
    )


class NegotiationService:
    """
    Runs automated replies for negotiations.

    Args:
        negotiations: Negotiation aggregate source
        history: Message history provider
        completion: Completion client around the configured provider
        interpreter: Response interpreter (records into the context store)
        fallback: Responder used when the provider fails
    """

    def __init__(
        self,
        negotiations: NegotiationStore,
        history: MessageHistoryProvider,
        completion: TextCompletionClient,
        interpreter: ResponseInterpreter,
        fallback: Optional[FallbackResponder] = None
    ):
        self.negotiations = negotiations
        self.history = history
        self.completion = completion
        self.interpreter = interpreter
        self.fallback = fallback or FallbackResponder()

    async def respond(
        self,
        negotiation_id: str,
        user_message: str = "",
        *,
        personality: Personality = "professional",
        urgency: Urgency = "medium",
        user_id: str = "anonymous"
    ) -> TurnResult:
        """
        Produce and append the automated reply for a buyer turn.

        Raises:
            NegotiationNotFoundError: Unknown negotiation
            InvalidContextError: Negotiation state cannot form a valid context
        """
        negotiation = await self.negotiations.load_negotiation(negotiation_id)
        violations = negotiation.offer_violations()
        if violations:
            logger.warning(f"Negotiation {negotiation_id} has offer violations: {violations}")

        context = InterpretationContext.from_negotiation(
            negotiation,
            user_message=user_message,
            personality=personality,
            urgency=urgency,
            user_id=user_id,
        )
        history = await self.history.get_message_history(
            negotiation_id, limit=settings.HISTORY_LIMIT, include_context=True
        )

        scenario = detect_scenario(context)
        prompt_id = uuid.uuid4().hex
        prompt = render_negotiation_prompt(context, history.messages, scenario=scenario)

        result = await self.completion.complete(prompt, user_id=user_id)
        if isinstance(result, CompletionFailure):
            decision = self.fallback.respond(context, reason=f"{result.reason}: {result.error}")
        else:
            decision = self.interpreter.interpret(
                result.text, context, model=result.model, prompt_id=prompt_id
            )

        message = decision_to_message(decision)
        await self.history.append_message(negotiation_id, message)

        logger.info(
            f"Turn complete for {negotiation_id}: scenario={scenario}, "
            f"action={decision.action.value}, fallback={decision.metadata.is_fallback}"
        )
        return TurnResult(decision=decision, message=message, scenario=scenario, prompt_id=prompt_id)

