"""
Agent - public entry point for running desktop tasks.

Usage:
    agent = cua_agent.new(safety_level="strict", timeout=180)
    result = agent.do("open calculator and compute 12 * 7")
    print(result.summary)

    # Inside an event loop
    result = await agent.do_with_progress_async(task, lambda step: print(step.number))

One agent runs one task at a time. Backends (model client, input, capture,
accessibility) are built lazily on the first task; a construction failure
is cached and reported again on later calls.
"""

import asyncio
import logging
import threading
from typing import Any, Optional, Tuple

from cua_agent.configuration.config import AgentConfig, get_settings, resolve_api_key
from cua_agent.core.react_loop import EventCallback, LoopConfig, ReActLoop
from cua_agent.domain.errors import (
    AgentBusyError,
    CanceledError,
    TaskError,
    TaskTimeoutError,
)
from cua_agent.domain.types import ProgressCallback, Result
from cua_agent.infrastructure.element import ElementFinder
from cua_agent.infrastructure.input import InputAdapter, InputBackend, InputTiming, PyAutoGUIBackend
from cua_agent.infrastructure.llm import LiteLLMModelClient, ModelClientProtocol
from cua_agent.infrastructure.safety import (
    Guardrails,
    GuardrailsConfig,
    TakeoverHandler,
    TakeoverReason,
    TakeoverResponse,
)
from cua_agent.infrastructure.screen import CaptureBackend, MSSCapture
from cua_agent.infrastructure.tools import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for command-line use; CUA_LOG_LEVEL applies unless verbose."""
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, get_settings().log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT)


class Agent:
    """
    Computer Use Agent.

    Injected components replace the production backends; anything left as
    None is created on first use from the configuration.
    """

    def __init__(
        self,
        config: Optional[AgentConfig] = None,
        *,
        model_client: Optional[ModelClientProtocol] = None,
        input_backend: Optional[InputBackend] = None,
        capture: Optional[CaptureBackend] = None,
        element_finder: Optional[ElementFinder] = None,
        takeover_handler: Optional[TakeoverHandler] = None,
        input_timing: Optional[InputTiming] = None,
    ) -> None:
        self._config = config or AgentConfig.from_settings()
        self._model = model_client
        self._input_backend = input_backend
        self._capture = capture
        self._element_finder = element_finder
        self._takeover_handler = takeover_handler
        self._input_timing = input_timing

        self._init_lock = threading.Lock()
        self._initialized = False
        self._init_error: Optional[BaseException] = None
        self._guardrails: Optional[Guardrails] = None
        self._context: Optional[ToolContext] = None
        self._registry: Optional[ToolRegistry] = None

        self._busy = threading.Lock()
        self._state_lock = threading.Lock()
        self._runner: Optional[Tuple[asyncio.AbstractEventLoop, "asyncio.Future[Result]"]] = None
        self._stop_requested = False

    @property
    def is_running(self) -> bool:
        return self._busy.locked()

    @property
    def guardrails(self) -> Optional[Guardrails]:
        """Guardrails of this agent, once initialized."""
        return self._guardrails

    def config(self) -> AgentConfig:
        """Return a copy of the configuration."""
        return self._config.copy()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def _initialize(self) -> None:
        with self._init_lock:
            if self._initialized:
                if self._init_error is not None:
                    raise self._init_error
                return
            self._initialized = True

            try:
                config = self._config
                if self._model is None:
                    api_key = resolve_api_key(config.api_key)
                    self._model = LiteLLMModelClient(config.model, api_key=api_key)

                self._guardrails = Guardrails(
                    GuardrailsConfig(
                        level=config.safety_level,
                        max_actions_per_minute=config.rate_limit_per_minute,
                        audit_log_path=config.audit_log_file,
                    ),
                    takeover_handler=self._takeover_handler,
                )

                # An injected backend receives all keystrokes, including typed text.
                if self._input_backend is not None:
                    adapter = InputAdapter(self._input_backend, timing=self._input_timing, use_applescript=False)
                else:
                    adapter = InputAdapter(PyAutoGUIBackend(), timing=self._input_timing)
                self._context = ToolContext(
                    input=adapter,
                    capture=self._capture or MSSCapture(),
                    screenshot=config.screenshot,
                    screen_index=config.screen_index,
                    element_finder=self._element_finder,
                )
                self._registry = ToolRegistry()
                logger.info(f"Agent initialized with model {config.model}")
            except Exception as e:
                logger.error(f"Agent initialization failed: {e}")
                self._init_error = e
                raise

    # ------------------------------------------------------------------
    # Running tasks
    # ------------------------------------------------------------------

    def do(self, task: str) -> Result:
        """Run a task to completion, blocking the calling thread."""
        return asyncio.run(self.do_async(task))

    def do_with_progress(self, task: str, progress: Optional[ProgressCallback]) -> Result:
        """Run a task, calling ``progress`` after every step."""
        return asyncio.run(self.do_with_progress_async(task, progress))

    async def do_async(self, task: str, on_event: Optional[EventCallback] = None) -> Result:
        return await self._run(task, None, on_event)

    async def do_with_progress_async(
        self,
        task: str,
        progress: Optional[ProgressCallback],
        on_event: Optional[EventCallback] = None,
    ) -> Result:
        return await self._run(task, progress, on_event)

    async def _run(
        self,
        task: str,
        progress: Optional[ProgressCallback],
        on_event: Optional[EventCallback],
    ) -> Result:
        """
        Raises:
            TaskError: If the agent is busy or cannot be initialized
            asyncio.CancelledError: If the calling task itself is cancelled
        """
        if not self._busy.acquire(blocking=False):
            raise TaskError(task, AgentBusyError())

        try:
            try:
                self._initialize()
            except Exception as e:
                raise TaskError(task, e) from e

            loop = ReActLoop(
                model=self._model,
                registry=self._registry,
                context=self._context,
                guardrails=self._guardrails,
                config=LoopConfig(
                    max_actions=self._config.max_actions,
                    headless=self._config.headless,
                    takeover_enabled=self._takeover_handler is not None,
                ),
                progress=progress,
                on_event=on_event,
            )
            runner = asyncio.ensure_future(loop.run(task))
            with self._state_lock:
                self._runner = (asyncio.get_running_loop(), runner)
                self._stop_requested = False

            try:
                return await asyncio.wait_for(runner, timeout=self._config.timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Task timed out after {self._config.timeout}s: {task}")
                return loop.finish(TaskTimeoutError())
            except asyncio.CancelledError:
                with self._state_lock:
                    stopped = self._stop_requested
                if not stopped:
                    raise
                logger.info(f"Task canceled: {task}")
                return loop.finish(CanceledError())
            finally:
                with self._state_lock:
                    self._runner = None
        finally:
            self._busy.release()

    def stop(self) -> None:
        """Cancel the running task, if any. Safe to call from any thread."""
        with self._state_lock:
            if self._runner is None:
                return
            event_loop, runner = self._runner
            self._stop_requested = True
        event_loop.call_soon_threadsafe(runner.cancel)

    def request_takeover(self, message: str = "") -> None:
        """Stop before the next action and hand control to a human."""
        if self._guardrails is not None:
            self._guardrails.request_takeover(TakeoverReason.HOTKEY, message)

    def respond_takeover(self, response: TakeoverResponse) -> bool:
        """
        Answer a takeover whose handler returned None. Safe to call from any thread.

        Returns:
            False if the agent has not run yet or an answer is already queued
        """
        if self._guardrails is None:
            return False
        return self._guardrails.takeover.respond(response)


def new(**options: Any) -> Agent:
    """
    Create an agent from keyword options over the environment settings.

    Recognized options are the ``AgentConfig`` fields (api_key, model,
    safety_level, timeout, max_actions, verbose, headless,
    rate_limit_per_minute, screen_index, screenshot, audit_log_file).
    """
    return Agent(AgentConfig.from_settings(**options))
