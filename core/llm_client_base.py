"""
Base LLM Client

Provides shared chat-completion client functionality for all modules.
Each module creates its own instance with its own configuration.

Features:
- Calls the AI server's chat proxy (OpenAI-style request/response)
- Module-specific configuration (URL, model, sampling, timeouts)
- Connection pooling per instance
- Request/response logging and metrics
- Typed errors (RemoteError, QuotaLockedError, NetworkFailureError, ...)

Usage:
    # In module's llm_client.py
    from core.llm_client_base import BaseLLMClient, LLMConfig

    config = LLMConfig(
        base_url="https://ai.example.com",
        chat_path="/cerebras/chat",
        model="qwen-3-235b-a22b-instruct-2507",
        task_name="analyze"
    )

    client = BaseLLMClient(config)
    content = await client.chat(messages, api_key=key)
"""

import time
import asyncio
import aiohttp
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from config import estimate_tokens
from logs.logging_config import (
    get_llm_logger,
    log_llm_request,
    log_llm_response,
    log_metrics,
    build_metrics,
)
from .cancellation import run_cancellable
from .errors import (
    EmptyResultError,
    NetworkFailureError,
    ParseFailureError,
    QuotaLockedError,
    RemoteError,
    RequestCancelledError,
    is_network_error,
    load_json_body,
    parse_error_body,
)

logger = get_llm_logger()


@dataclass
class LLMConfig:
    """
    Configuration for an LLM client instance.

    Each module creates its own LLMConfig with module-specific settings,
    so different modules can point at different proxies or models.
    """
    base_url: str = "http://localhost:8000"
    chat_path: str = "/chat"

    # Model settings
    model: str = "qwen-3-235b-a22b-instruct-2507"
    temperature: float = 0.2
    top_p: float = 0.8
    max_tokens: int = 6000

    # Connection settings
    timeout: int = 300
    pool_limit: int = 50

    # Logging identifier
    task_name: str = "unknown"

    def get_chat_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.chat_path}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "base_url": self.base_url,
            "chat_path": self.chat_path,
            "model": self.model,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
            "pool_limit": self.pool_limit,
            "task_name": self.task_name,
        }


class BaseLLMClient:
    """
    Chat-completion client with logging, metrics and typed errors.

    Each module creates its OWN INSTANCE with its OWN CONFIGURATION.
    A session may be injected (tests, shared pools); otherwise the client
    creates and owns one.
    """

    def __init__(self, config: LLMConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize LLM client with module-specific configuration.

        Args:
            config: LLMConfig with URL, model and other settings
            session: Optional externally managed aiohttp session
        """
        self.config = config
        self._session = session
        self._owns_session = session is None

        logger.debug(
            f"[{config.task_name.upper()}_LLM] Initialized | "
            f"model={config.model} | url={config.get_chat_url()}"
        )

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session for this instance."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            connector = aiohttp.TCPConnector(
                limit=self.config.pool_limit,
                limit_per_host=self.config.pool_limit
            )
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                connector=connector
            )
            self._owns_session = True
            logger.debug(f"[{self.config.task_name.upper()}_LLM] Session created")
        return self._session

    async def close(self):
        """Close this instance's session (only if it owns it)."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.debug(f"[{self.config.task_name.upper()}_LLM] Session closed")

    async def chat(
        self,
        messages: List[Dict[str, str]],
        api_key: Optional[str] = None,
        model: str = None,
        temperature: float = None,
        top_p: float = None,
        max_tokens: int = None,
        task: str = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """
        Send a chat completion and return the first choice's content.

        Args:
            messages: Chat messages (role/content dicts)
            api_key: Bearer token forwarded to the proxy in the body
            model: Override model (uses config.model if not specified)
            temperature: Override temperature
            top_p: Override nucleus sampling
            max_tokens: Override response token budget
            task: Override task name for logging
            cancel_event: Set by the caller to abort the request

        Returns:
            Generated text response

        Raises:
            QuotaLockedError: On a 403 usage-limit response
            RemoteError: On any other non-2xx response
            NetworkFailureError: On transport failure or timeout
            RequestCancelledError: If cancel_event fires first
            EmptyResultError: If the response carries no content
        """
        model_name = model or self.config.model
        temp = temperature if temperature is not None else self.config.temperature
        nucleus = top_p if top_p is not None else self.config.top_p
        max_tok = max_tokens if max_tokens is not None else self.config.max_tokens
        task_name = task or self.config.task_name

        payload = {
            "model": model_name,
            "messages": messages,
            "max_tokens": max_tok,
            "temperature": temp,
            "top_p": nucleus,
            "apiKey": api_key,
        }
        prompt_text = "\n".join(m.get("content", "") for m in messages)

        call_id = log_llm_request(
            model=model_name,
            task=task_name,
            prompt=prompt_text,
            temperature=temp,
            max_tokens=max_tok
        )

        start_time = time.time()
        status = "success"
        response = ""
        error_message = None

        try:
            response = await run_cancellable(self._post_chat(payload), cancel_event)
            return response
        except RequestCancelledError as e:
            status = "cancelled"
            error_message = str(e)
            raise
        except Exception as e:
            status = "error"
            error_message = str(e)
            raise
        finally:
            latency_ms = (time.time() - start_time) * 1000
            log_llm_response(
                call_id=call_id,
                model=model_name,
                response=response,
                latency_ms=latency_ms,
                status=status,
                error_message=error_message
            )
            log_metrics(build_metrics(
                call_id=call_id,
                model=model_name,
                task=task_name,
                latency_ms=latency_ms,
                prompt=prompt_text,
                response=response,
                status=status,
                max_tokens=max_tok,
                estimated_prompt_tokens=estimate_tokens(prompt_text),
            ))

    async def _post_chat(self, payload: Dict[str, Any]) -> str:
        """POST the payload to the chat proxy and extract the content."""
        url = self.config.get_chat_url()
        label = self.config.task_name.upper()

        logger.debug(f"[{label}_LLM] Calling chat proxy | url={url} | model={payload['model']}")

        try:
            session = await self.get_session()
            async with session.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"}
            ) as r:
                body = await r.text()

                if r.status == 403:
                    remaining = None
                    try:
                        data = load_json_body(body)
                        if isinstance(data, dict):
                            remaining = data.get("remaining")
                    except ParseFailureError as e:
                        logger.debug(f"[{label}_LLM] 403 body ignored | error={e}")
                    raise QuotaLockedError(
                        parse_error_body(body, "Usage limit reached."),
                        remaining=remaining
                    )

                if r.status < 200 or r.status >= 300:
                    message = parse_error_body(body, r.reason or f"HTTP {r.status}")
                    logger.error(f"[{label}_LLM] Chat request failed | status={r.status} | error={message}")
                    raise RemoteError(r.status, f"Analysis request failed: {message}")

                return self._extract_content(body)

        except asyncio.TimeoutError:
            logger.error(f"[{label}_LLM] Chat timeout | model={payload['model']}")
            raise NetworkFailureError(
                f"{self.config.task_name.title()} LLM request timed out. Please try again.",
                server_down=True
            )

        except aiohttp.ClientError as e:
            logger.error(f"[{label}_LLM] Chat request failed | model={payload['model']} | error={e}")
            raise NetworkFailureError(
                f"{self.config.task_name.title()} LLM service unavailable: {e}",
                server_down=is_network_error(e)
            )

    def _extract_content(self, body: str) -> str:
        """
        Read choices[0].message.content, falling back to the raw body when
        the proxy did not return JSON.
        """
        label = self.config.task_name.upper()
        try:
            data = load_json_body(body)
        except ParseFailureError:
            logger.warning(f"[{label}_LLM] Non-JSON chat response, using raw body | chars={len(body)}")
            content = body
        else:
            try:
                content = data["choices"][0]["message"]["content"]
            except (KeyError, IndexError, TypeError):
                logger.warning(f"[{label}_LLM] Unexpected chat response shape | keys={list(data)[:5] if isinstance(data, dict) else type(data).__name__}")
                content = ""

        if not content or not str(content).strip():
            raise EmptyResultError("Analysis response contained no content")
        return str(content).strip()

    def get_backend_info(self) -> Dict[str, Any]:
        """Get information about this client's configuration."""
        info = self.config.to_dict()
        info["chat_url"] = self.config.get_chat_url()
        return info
