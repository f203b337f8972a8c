import time
import asyncio
import logging
from typing import Dict, Any, List

from langchain_ollama import ChatOllama
from langchain_core.messages import HumanMessage
import httpx

logger = logging.getLogger(__name__)


class LLMUnavailableError(RuntimeError):
    """Raised when every attempt to reach the model failed."""


def _is_transient(error: Exception) -> bool:
    if isinstance(error, (httpx.TransportError, ConnectionError, TimeoutError)):
        return True
    message = str(error).lower()
    return "connection" in message or "connect" in message


class OllamaClient:
    """
    LangChain-based Ollama client with a bounded timeout and a fixed retry
    budget with exponential backoff.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        temperature: float = 0.1,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: float = 120.0,
    ):
        # ChatOllama talks to the native API, not the OpenAI-compatible /v1 one
        if base_url.endswith("/v1"):
            base_url = base_url[:-3]
        elif base_url.endswith("/v1/"):
            base_url = base_url[:-4]

        self.base_url = base_url.rstrip('/')
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        self.llm = ChatOllama(
            base_url=self.base_url,
            model=model,
            temperature=temperature,
            num_ctx=4096,
            format="json",
        )

    async def _invoke_with_retry(self, messages: List[HumanMessage]) -> Any:
        last_exception: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return await asyncio.wait_for(
                    self.llm.ainvoke(messages),
                    timeout=self.timeout,
                )

            except asyncio.TimeoutError:
                last_exception = TimeoutError(f"Request timed out after {self.timeout}s")
                logger.warning(f"Attempt {attempt}/{self.max_retries}: Timeout")

            except Exception as e:
                if not _is_transient(e):
                    raise
                last_exception = e
                logger.warning(
                    f"Attempt {attempt}/{self.max_retries}: Connection error - {e} "
                    f"(base_url={self.base_url}, model={self.model})"
                )

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))

        raise LLMUnavailableError(
            f"All {self.max_retries} attempts failed: {last_exception}"
        ) from last_exception

    async def evaluate(self, prompt: str) -> Dict[str, Any]:
        """
        Send a prompt and return the response text with latency.
        """
        start = time.time()

        response = await self._invoke_with_retry([HumanMessage(content=prompt)])

        latency_ms = int((time.time() - start) * 1000)

        return {
            "content": response.content,
            "latency_ms": latency_ms,
        }

    async def health_check(self, transport: httpx.AsyncBaseTransport | None = None) -> bool:
        """
        True when the server answers /api/tags and lists the configured model.
        """
        url = f"{self.base_url}/api/tags"
        try:
            async with httpx.AsyncClient(timeout=5.0, transport=transport) as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Ollama health check error: {e} (url={url})")
            return False

        if resp.status_code != 200:
            logger.error(f"Ollama health check failed: {resp.status_code} {resp.text}")
            return False

        models = {m.get("name", "") for m in resp.json().get("models", [])}
        if self.model not in models and f"{self.model}:latest" not in models:
            logger.error(f"Model {self.model} is not pulled on {self.base_url} (available: {sorted(models)})")
            return False
        return True
