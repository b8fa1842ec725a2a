"""Ephemeral content substitution for a rendered chat message.

A caller-supplied pattern rewrites one message's text for the duration of
a capture. Patterns are compiled with RE2, whose matching time is linear
in the input, so hostile patterns cannot trigger catastrophic
backtracking. The edit is pushed through the client's own update dispatch
and is always reverted afterwards, so the live document never keeps it.
"""

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Tuple

import re2

from ..errors import EmptyResultError, InvalidPatternError, NoMatchFoundError
from ..models.capture import SubstitutionSpec
from .chat_driver import ChatDriver

logger = logging.getLogger(__name__)

DEFAULT_FLAGS = "i"
SUPPORTED_FLAGS = {"g", "i", "m", "s", "u"}
INLINE_FLAGS = ("i", "m", "s")

# $$, $&, $`, $', $1..$99
_REPLACEMENT_TOKEN = re.compile(r"\$(\$|&|`|'|\d{1,2})")


@dataclass(frozen=True)
class CompiledPattern:
    """An RE2 pattern plus whether every match is replaced."""
    regex: Any
    replace_all: bool
    source: str
    flags: str


@dataclass
class SubstitutionResult:
    original_content: str
    new_content: str


def compile_pattern(pattern: str, flags: str = "") -> CompiledPattern:
    """Compile a pattern with JavaScript-style flags.

    Raises:
        InvalidPatternError: On unknown or repeated flags or a pattern RE2 rejects
    """
    flags = flags or DEFAULT_FLAGS

    unknown = set(flags) - SUPPORTED_FLAGS
    if unknown or len(set(flags)) != len(flags):
        raise InvalidPatternError(pattern, flags, reason="unsupported or repeated flags")

    inline = "".join(flag for flag in INLINE_FLAGS if flag in flags)
    source = f"(?{inline}){pattern}" if inline else pattern

    try:
        regex = re2.compile(source)
    except re2.error as e:
        raise InvalidPatternError(pattern, flags, reason=str(e))

    return CompiledPattern(regex=regex, replace_all="g" in flags, source=pattern, flags=flags)


def expand_replacement(template: str, match, text: str) -> str:
    """Expand ``$`` references in a replacement the way JavaScript does."""
    def token(m) -> str:
        ref = m.group(1)
        if ref == "$":
            return "$"
        if ref == "&":
            return match.group(0)
        if ref == "`":
            return text[:match.start()]
        if ref == "'":
            return text[match.end():]

        index = int(ref)
        group_count = len(match.groups())
        if index > group_count and len(ref) == 2:
            # "$12" with one group is group 1 followed by a literal "2"
            index, rest = int(ref[0]), ref[1]
        else:
            rest = ""
        if index == 0 or index > group_count:
            return m.group(0)
        return (match.group(index) or "") + rest

    return _REPLACEMENT_TOKEN.sub(token, template)


def substitute(compiled: CompiledPattern, replacement: str, text: str) -> Tuple[str, int]:
    """Replace the first match, or every match for the ``g`` flag.

    Returns:
        New text and number of replacements made
    """
    pieces = []
    position = 0
    count = 0

    for match in compiled.regex.finditer(text):
        pieces.append(text[position:match.start()])
        pieces.append(expand_replacement(replacement, match, text))
        position = match.end()
        count += 1
        if not compiled.replace_all:
            break

    pieces.append(text[position:])
    return "".join(pieces), count


class ContentSubstitutionEngine:
    """Applies and reverts substitutions through a chat driver."""

    def __init__(self, driver: ChatDriver, settle_ms: int = 200):
        self.driver = driver
        self.settle_ms = settle_ms

    def compute(self, content: str, spec: SubstitutionSpec) -> str:
        """Compute substituted content without touching the document.

        Raises:
            InvalidPatternError: Pattern fails to compile
            NoMatchFoundError: Pattern does not match
            EmptyResultError: Substitution leaves nothing
        """
        compiled = compile_pattern(spec.pattern, spec.flags)

        if compiled.regex.search(content) is None:
            raise NoMatchFoundError(spec.pattern, content)

        new_content, _ = substitute(compiled, spec.replacement, content)
        if not new_content:
            raise EmptyResultError()
        return new_content

    async def apply(self, message_data: Dict[str, Any], spec: SubstitutionSpec) -> SubstitutionResult:
        """Compute the new content and push it into the document."""
        original = message_data.get("content") or ""
        new_content = self.compute(original, spec)

        await self.driver.set_message_content(message_data, new_content)
        return SubstitutionResult(original_content=original, new_content=new_content)

    async def restore(self, message_data: Dict[str, Any], original_content: str) -> None:
        """Put the original content back, even when it is empty."""
        await self.driver.set_message_content(message_data, original_content)

    @asynccontextmanager
    async def substituted(
        self,
        channel_id: str,
        message_id: str,
        spec: SubstitutionSpec
    ) -> AsyncIterator[SubstitutionResult]:
        """Hold a substitution for the duration of the block.

        Failures before the document is touched propagate without a
        restore; once the edit is dispatched the original content is put
        back on every exit path, including cancellation.
        """
        message_data = await self.driver.fetch_cached_message(channel_id, message_id)
        original = message_data.get("content") or ""
        new_content = self.compute(original, spec)

        logger.info(f"Substituting content of message {message_id}")
        try:
            await self.driver.set_message_content(message_data, new_content)
            await asyncio.sleep(self.settle_ms / 1000)
            yield SubstitutionResult(original_content=original, new_content=new_content)
        finally:
            await asyncio.sleep(self.settle_ms / 1000)
            await self.restore(message_data, original)
            logger.debug(f"Restored content of message {message_id}")
