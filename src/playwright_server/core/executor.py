# src/playwright_server/core/executor.py
"""
Sequence Executor

Runs one or many commands against a session.

Keep-alive policy: a successful single command resets the session's TTL;
a sequence resets it once, after every step succeeded. A halted sequence
leaves the TTL untouched.

An ``ExecutionException`` from any command costs the session: it is torn
down before the error is reported. Nothing is retried.
"""

import time
from typing import Any, Dict, Optional, Sequence

from .commands import CommandDispatcher
from .exceptions import AutomationException, ExecutionException, ValidationException
from .logger import get_logger, log_command_execution
from .session_registry import Session, SessionRegistry
from ..models.command import CommandRequest, CommandResult, CommandStatus, SequenceResult


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


class SequenceExecutor:
    """
    Orchestrates command execution for the HTTP layer.

    Example:
        >>> executor = SequenceExecutor(registry, CommandDispatcher())
        >>> result = await executor.execute_many(session_id, [
        ...     CommandRequest(command="navigate", options={"url": "https://example.com"}),
        ...     CommandRequest(command="textContent", selector="h1"),
        ... ])
        >>> result.completed_count, result.halted
        (2, False)
    """

    def __init__(self, registry: SessionRegistry, dispatcher: CommandDispatcher):
        self.registry = registry
        self.dispatcher = dispatcher
        self.logger = get_logger("sequence_executor")

    async def execute_one(self, session_id: str, request: CommandRequest) -> Any:
        """
        Run a single command and return its raw value.

        Raises:
            SessionNotFoundException: unknown or expired session
            CommandNotFoundException: unknown command name
            ValidationException: missing or malformed parameters
            TimeoutException, ElementNotFoundException: step failures
            ExecutionException: unclassified failure; the session is gone
        """
        start = time.perf_counter()
        try:
            value = await self._run(session_id, request)
        except AutomationException as e:
            self._log_step(session_id, request, 0, _elapsed_ms(start), error=e, total_commands=1)
            raise

        self.registry.reset_activity(session_id)
        self._log_step(session_id, request, 0, _elapsed_ms(start), total_commands=1)
        return value

    async def execute_many(
            self,
            session_id: str,
            requests: Sequence[CommandRequest],
            metadata: Optional[Dict[str, Any]] = None
    ) -> SequenceResult:
        """
        Run ``requests`` in strict order, halting on the first failure.

        Steps after the failing one are neither attempted nor reported.

        Raises:
            ValidationException: empty request list
            CommandNotFoundException: any request names an unknown command
            SessionNotFoundException: the session does not exist
        """
        if not requests:
            raise ValidationException("Command array cannot be empty")

        for request in requests:
            self.dispatcher.resolve(request.command)

        self.registry.get(session_id)

        sequence = SequenceResult(total_count=len(requests), executed_at=self.registry.clock.now())

        for index, request in enumerate(requests):
            start = time.perf_counter()
            try:
                value = await self._run(session_id, request)
            except AutomationException as e:
                duration_ms = _elapsed_ms(start)
                sequence.results.append(CommandResult(
                    index=index,
                    command=request.command,
                    status=CommandStatus.ERROR,
                    result=None,
                    duration_ms=duration_ms,
                    error=e.message,
                    error_type=e.kind.value,
                    selector=request.selector
                ))
                self._log_step(
                    session_id, request, index, duration_ms,
                    error=e, total_commands=len(requests), metadata=metadata
                )
                break

            duration_ms = _elapsed_ms(start)
            sequence.results.append(CommandResult(
                index=index,
                command=request.command,
                status=CommandStatus.SUCCESS,
                result=value,
                duration_ms=duration_ms,
                selector=request.selector
            ))
            self._log_step(
                session_id, request, index, duration_ms,
                total_commands=len(requests), metadata=metadata
            )

        if not sequence.halted:
            self.registry.reset_activity(session_id)

        self.logger.info(
            "Command sequence finished",
            session_id=session_id,
            completed_count=sequence.completed_count,
            total_count=sequence.total_count,
            halted=sequence.halted
        )
        return sequence

    async def _run(self, session_id: str, request: CommandRequest) -> Any:
        session = self.registry.get(session_id)
        try:
            page = session.page
            if page is None:
                raise ExecutionException("No active page in browser context", session_id=session_id)
            return await self.dispatcher.dispatch(page, request)
        except ExecutionException as e:
            e.add_context("session_id", session_id)
            self.logger.warning(
                "Execution error, tearing session down",
                session_id=session_id,
                command=request.command,
                error=e.message
            )
            await self.registry.terminate(session_id, reason="execution_error")
            raise

    def _current_url(self, session_id: str) -> Optional[str]:
        session: Optional[Session] = next(
            (s for s in self.registry.list() if s.id == session_id), None
        )
        if session is None or session.page is None:
            return None
        return session.page.url

    def _log_step(
            self,
            session_id: str,
            request: CommandRequest,
            index: int,
            duration_ms: float,
            error: Optional[AutomationException] = None,
            total_commands: int = 1,
            metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        step_metadata: Dict[str, Any] = dict(metadata or {})
        step_metadata["total_commands"] = total_commands
        current_url = self._current_url(session_id)
        if current_url:
            step_metadata["current_url"] = current_url

        log_command_execution(
            session_id=session_id,
            command=request.command,
            index=index,
            duration_ms=duration_ms,
            status=CommandStatus.ERROR.value if error else CommandStatus.SUCCESS.value,
            selector=request.selector,
            params=request.options,
            metadata=step_metadata,
            error=error.message if error else None
        )
