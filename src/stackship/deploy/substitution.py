"""Literal token substitution for uploaded files."""

import re
from collections.abc import Callable, Mapping
from typing import overload

from stackship.core.logging import StructuredLogger

logger = StructuredLogger(__name__)

Transform = Callable[[bytes], bytes]


def identity(content: bytes) -> bytes:
    return content


class SubstitutionEngine:
    """Replace declared tokens with resolved values.

    Plain string replacement, no template language. Unknown tokens are left
    as they are, so partially resolved exports never break an upload.
    """

    @overload
    def render(self, variables: Mapping[str, str], content: str) -> str: ...

    @overload
    def render(self, variables: Mapping[str, str], content: bytes) -> bytes: ...

    def render(self, variables: Mapping[str, str], content: str | bytes) -> str | bytes:
        """Render content with the given token values.

        Bytes that are not valid UTF-8 are returned unchanged.

        Args:
            variables: Mapping of token to replacement value
            content: Text or raw file content

        Returns:
            Rendered content of the same type
        """
        if not variables:
            return content

        if isinstance(content, bytes):
            try:
                text = content.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning("Content is not UTF-8, tokens left unreplaced", tokens=len(variables))
                return content
            return self._replace(variables, text).encode("utf-8")

        return self._replace(variables, content)

    def _replace(self, variables: Mapping[str, str], text: str) -> str:
        tokens = [token for token in variables if token]
        if not tokens:
            return text
        # Single pass, longest token first: "API" never eats the prefix of "API_URL"
        # and replacement values are not scanned again
        pattern = re.compile("|".join(re.escape(t) for t in sorted(tokens, key=len, reverse=True)))
        return pattern.sub(lambda match: variables[match.group(0)], text)

    def transform_for(self, variables: Mapping[str, str], substitute: bool) -> Transform:
        """Content transform to apply to a file before upload."""
        if not substitute:
            return identity

        frozen = dict(variables)

        def transform(content: bytes) -> bytes:
            return self.render(frozen, content)

        return transform
