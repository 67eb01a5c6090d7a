"""Response assertions shared by the bundled suites."""

import aiohttp


class ExpectationError(AssertionError):
    """Raised when a service response does not match what the test expects."""


async def ok_text(response: aiohttp.ClientResponse) -> str:
    """Raise for a non-2xx status and return the response body."""
    response.raise_for_status()
    return await response.text()


def expect_status(response: aiohttp.ClientResponse, expected: int) -> None:
    """The response must carry exactly the ``expected`` status."""
    if response.status != expected:
        raise ExpectationError(
            f"Expected HTTP {expected} from {response.method} {response.url.path}, "
            f"got {response.status}"
        )


def expect_json_array(content: str) -> None:
    """The body must be a JSON array, possibly empty."""
    body = content.strip()
    if not (body.startswith("[") and body.endswith("]")):
        raise ExpectationError(f"Expected a JSON array, got: {body[:200]}")


def expect_json_object(content: str) -> None:
    """The body must be a JSON object."""
    body = content.strip()
    if not (body.startswith("{") and body.endswith("}")):
        raise ExpectationError(f"Expected a JSON object, got: {body[:200]}")


def expect_contains(content: str, fragment: str) -> None:
    """The body must contain ``fragment``."""
    if fragment not in content:
        raise ExpectationError(f"Expected {fragment!r} in response: {content[:200]}")
