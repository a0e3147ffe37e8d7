"""Advice service HTTP client for field log guidance"""

import httpx
from agriloan_gateway.domain.exceptions import AdviceServiceError
from agriloan_gateway.config import settings

SYSTEM_INSTRUCTION = (
    "You are an expert agricultural advisor specializing in Nigerian farming conditions. "
    "Your goal is to provide brief, actionable, and easy-to-understand advice to farmers based on their "
    "field log entries. Keep advice to 2-4 concise sentences. Address the farmer directly "
    "(e.g., 'You should consider...'). Focus on practical next steps or important observations related to "
    "the logged activity and notes. If the advice is generic due to lack of specific details, state that "
    "more specific information could lead to better advice."
)


class AdviceClient:
    """Client for the external text-advice service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.advice_api_base
        self.timeout = timeout or settings.advice_timeout_seconds
        self.transport = transport

    async def get_advice(self, prompt: str) -> str:
        """
        Ask the advice service about one field log entry.

        Raises:
            AdviceServiceError: On timeout, HTTP errors, or a malformed response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/advice",
                    json={"prompt": prompt, "system_instruction": SYSTEM_INSTRUCTION},
                )
                response.raise_for_status()
                data = response.json()

                if data.get("error"):
                    raise AdviceServiceError(f"Advice service error: {data['error']}")
                advice = data["advice"].strip()
                if not advice:
                    raise AdviceServiceError("Advice service returned an empty answer")
                return advice

            except httpx.TimeoutException as e:
                raise AdviceServiceError(f"Advice service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise AdviceServiceError(f"Advice service error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise AdviceServiceError(f"Advice service unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise AdviceServiceError(f"Invalid response from advice service: {e}") from e
