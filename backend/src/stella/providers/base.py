"""Abstract provider session interface for the turn loop."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from ..errors import TransportError

logger = logging.getLogger(__name__)


class ProviderSession(ABC):
    """
    Abstract chat session over one backend. Implement this to plug in any
    backend (Gemini, OpenAI, Ollama, ...).

    The loop only depends on :meth:`send_message` and :meth:`list_models`.
    Each implementation owns its conversation history privately; every call
    to :meth:`send_message` must see the context of the earlier ones.
    """

    provider_name: str = ""

    def __init__(
        self,
        model: str,
        *,
        system_prompt: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.model = model
        # Read on the first send; may be set after construction until then.
        self.system_prompt = system_prompt
        self.timeout = timeout

    @abstractmethod
    async def _send(self, text: str) -> str:
        """Backend-specific call: send one user turn, return the reply text."""
        ...

    @abstractmethod
    async def _list_models(self) -> list[str]:
        """Backend-specific model listing."""
        ...

    async def _call(self, what: str, coro):
        try:
            if self.timeout is None:
                return await coro
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except TransportError:
            raise
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"{self.provider_name} {what} timed out after {self.timeout:g}s"
            ) from e
        except Exception as e:
            logger.debug("%s %s failed", self.provider_name, what, exc_info=True)
            raise TransportError(f"{self.provider_name} {what} failed: {e}") from e

    async def send_message(self, text: str) -> str:
        """
        Send one turn and return the backend's text reply.

        Raises:
            TransportError: on any transport, auth, rate-limit or timeout failure.
        """
        logger.debug("Sending %d chars to %s:%s", len(text), self.provider_name, self.model)
        reply = await self._call("request", self._send(text))
        return reply or ""

    async def list_models(self) -> list[str]:
        """Return the model identifiers available from this backend."""
        return await self._call("model listing", self._list_models())
