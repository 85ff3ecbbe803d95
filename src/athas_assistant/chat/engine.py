"""Tool-augmented conversation loop.

Interleaves model calls with tool invocations until the model answers in
plain text or the iteration bound is reached:

    AWAITING_MODEL --no tool use--> DONE
    AWAITING_MODEL --tool use-----> EXECUTING_TOOLS --results--> AWAITING_MODEL
    AWAITING_MODEL --bound hit----> ABORTED

Each transition produces a new immutable LoopState. Only the caller decides
what gets persisted; the loop never touches conversation storage.
"""

import asyncio
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from athas_assistant.chat.catalog import build_catalog, split_qualified_name
from athas_assistant.chat.progress import ProgressChannel
from athas_assistant.exceptions import ToolProviderError
from athas_assistant.llm.base import ModelClient
from athas_assistant.providers.registry import ToolProviderRegistry

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "Unable to generate response"


class LoopPhase(str, Enum):
    """State of a running conversation loop."""

    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"  # Model answered without tool use
    ABORTED = "aborted"  # Iteration bound reached


@dataclass(frozen=True)
class ConversationTurn:
    """One turn in API shape: plain text or a tuple of content blocks."""

    role: str
    content: str | tuple[dict[str, Any], ...]

    @classmethod
    def user(cls, content: str | Sequence[dict[str, Any]]) -> "ConversationTurn":
        return cls("user", content if isinstance(content, str) else tuple(content))

    @classmethod
    def assistant(cls, text: str) -> "ConversationTurn":
        return cls("assistant", text)

    @property
    def is_text(self) -> bool:
        return isinstance(self.content, str)

    def blocks(self, block_type: str) -> list[dict[str, Any]]:
        if self.is_text:
            return []
        return [b for b in self.content if b.get("type") == block_type]

    def to_api(self) -> dict[str, Any]:
        content = self.content if self.is_text else list(self.content)
        return {"role": self.role, "content": content}


@dataclass(frozen=True)
class LoopState:
    """Snapshot of one loop invocation between transitions."""

    turns: tuple[ConversationTurn, ...]
    phase: LoopPhase = LoopPhase.AWAITING_MODEL
    iteration: int = 0
    last_text: str | None = None  # Most recent non-empty model text
    final_text: str | None = None

    @property
    def is_finished(self) -> bool:
        return self.phase in (LoopPhase.DONE, LoopPhase.ABORTED)


@dataclass(frozen=True)
class LoopResult:
    """Outcome of one loop invocation.

    Attributes:
        text: Final assistant text, never empty
        phase: DONE or ABORTED
        iterations: Model round trips made
        turns: Full working transcript, ending with the final assistant turn
        tool_calls: Number of tool invocations dispatched
    """

    text: str
    phase: LoopPhase
    iterations: int
    turns: tuple[ConversationTurn, ...]
    tool_calls: int = 0

    @property
    def bounded(self) -> bool:
        return self.phase == LoopPhase.ABORTED


def _tool_result(tool_use_id: str, content: str, is_error: bool = False) -> dict[str, Any]:
    block: dict[str, Any] = {
        "type": "tool_result",
        "tool_use_id": tool_use_id,
        "content": content,
    }
    if is_error:
        block["is_error"] = True
    return block


def _error_result(tool_use_id: str, message: str) -> dict[str, Any]:
    return _tool_result(tool_use_id, json.dumps({"error": message}), is_error=True)


class ConversationLoop:
    """Runs the bounded model/tool protocol for one chat request at a time.

    A single instance is shared by concurrent requests; all per-request
    state lives in LoopState.
    """

    def __init__(
        self,
        model: ModelClient,
        registry: ToolProviderRegistry,
        system_prompt: str,
        max_iterations: int = 10,
        parallel_tool_calls: bool = False,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.model = model
        self.registry = registry
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations
        self.parallel_tool_calls = parallel_tool_calls

    async def run(
        self,
        history: Sequence[ConversationTurn],
        user_turn: ConversationTurn,
        reporter: ProgressChannel | None = None,
    ) -> LoopResult:
        """Run the loop to completion.

        Args:
            history: Prior text turns of the conversation
            user_turn: The new user turn
            reporter: Optional channel for progress events

        Returns:
            LoopResult with the final text

        Raises:
            ModelRequestError: If the model call fails
        """
        catalog = await build_catalog(self.registry)
        tools = [entry.to_api() for entry in catalog] or None

        state = LoopState(turns=(*history, user_turn))
        tool_calls = 0
        while not state.is_finished:
            if state.phase == LoopPhase.AWAITING_MODEL:
                state = await self._await_model(state, tools)
            else:
                tool_calls += len(state.turns[-1].blocks("tool_use"))
                state = await self._execute_tools(state, reporter)

        return self._finish(state, tool_calls)

    async def _await_model(
        self,
        state: LoopState,
        tools: list[dict[str, Any]] | None,
    ) -> LoopState:
        if state.iteration >= self.max_iterations:
            logger.warning(f"Tool loop reached {self.max_iterations} iterations; stopping")
            return replace(state, phase=LoopPhase.ABORTED)

        iteration = state.iteration + 1
        response = await self.model.create_message(
            system=self.system_prompt,
            messages=[turn.to_api() for turn in state.turns],
            tools=tools,
        )
        logger.info(f"Iteration {iteration}: has_tool_use={response.has_tool_use}")

        last_text = response.text if response.text else state.last_text

        if not response.has_tool_use:
            return replace(
                state,
                phase=LoopPhase.DONE,
                iteration=iteration,
                last_text=last_text,
                final_text=response.text,
            )

        assistant_turn = ConversationTurn(
            "assistant", tuple(block.to_api() for block in response.content)
        )
        return replace(
            state,
            phase=LoopPhase.EXECUTING_TOOLS,
            iteration=iteration,
            last_text=last_text,
            turns=state.turns + (assistant_turn,),
        )

    async def _execute_tools(
        self,
        state: LoopState,
        reporter: ProgressChannel | None,
    ) -> LoopState:
        requests = state.turns[-1].blocks("tool_use")

        if self.parallel_tool_calls:
            results = await asyncio.gather(
                *(self._dispatch(block, state.iteration, reporter) for block in requests)
            )
        else:
            results = [
                await self._dispatch(block, state.iteration, reporter) for block in requests
            ]

        return replace(
            state,
            phase=LoopPhase.AWAITING_MODEL,
            turns=state.turns + (ConversationTurn.user(results),),
        )

    async def _dispatch(
        self,
        block: dict[str, Any],
        iteration: int,
        reporter: ProgressChannel | None,
    ) -> dict[str, Any]:
        """Run one tool invocation; failures come back as error results."""
        tool_use_id = block["id"]
        try:
            provider, tool = split_qualified_name(block["name"])
        except ValueError as e:
            logger.warning(f"Rejecting tool call: {e}")
            return _error_result(tool_use_id, str(e))

        if reporter is not None:
            reporter.progress(
                f"Calling {provider}/{tool}",
                provider=provider,
                tool=tool,
                status="started",
                iteration=iteration,
            )
        logger.info(f"Calling tool: {provider}/{tool}")

        try:
            result = await self.registry.call_tool(provider, tool, block.get("input") or {})
            outcome = _tool_result(tool_use_id, result.content, is_error=result.is_error)
        except ToolProviderError as e:
            logger.warning(f"Tool error: {e}")
            outcome = _error_result(tool_use_id, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error calling {provider}/{tool}")
            outcome = _error_result(tool_use_id, str(e) or type(e).__name__)

        if reporter is not None:
            failed = bool(outcome.get("is_error"))
            reporter.progress(
                f"{'Failed' if failed else 'Finished'} {provider}/{tool}",
                provider=provider,
                tool=tool,
                status="failed" if failed else "completed",
                iteration=iteration,
            )
        return outcome

    @staticmethod
    def _finish(state: LoopState, tool_calls: int) -> LoopResult:
        if state.phase == LoopPhase.DONE:
            text = state.final_text or FALLBACK_RESPONSE
        else:
            text = state.last_text or FALLBACK_RESPONSE
        return LoopResult(
            text=text,
            phase=state.phase,
            iterations=state.iteration,
            turns=state.turns + (ConversationTurn.assistant(text),),
            tool_calls=tool_calls,
        )
