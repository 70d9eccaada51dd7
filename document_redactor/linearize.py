"""
Text linearization and offset reconciliation.

Pattern matching runs over one string per page, built by joining the
page's tokens with single spaces. The offset table kept alongside that
string maps any matched character range back to the tokens it overlaps,
which is how a match recovers its on-page geometry.
"""

from dataclasses import dataclass

from .models import BoundingBox, Page, TextToken
from .geometry import merge_bboxes
from .exceptions import UnmappedMatch


SEPARATOR = " "


@dataclass(frozen=True)
class TokenSpan:
    """A token and its [start, end) range in the linearized page text."""
    token: TextToken
    start: int
    end: int

    def intersects(self, start: int, end: int) -> bool:
        return self.start < end and self.end > start


@dataclass(frozen=True)
class LinearText:
    """The linearized text of one page plus its token offset table."""
    page_number: int
    text: str
    spans: tuple[TokenSpan, ...]

    def tokens_in(self, start: int, end: int) -> list[TextToken]:
        """Tokens whose range intersects [start, end)."""
        return [s.token for s in self.spans if s.intersects(start, end)]

    def reconcile(self, start: int, end: int) -> BoundingBox:
        """
        Map a matched character range back to page geometry.

        Args:
            start: Start offset of the match (inclusive)
            end: End offset of the match (exclusive)

        Returns:
            Tightest box around every token the range touches

        Raises:
            UnmappedMatch: If the range touches no token
        """
        tokens = self.tokens_in(start, end)
        if not tokens:
            raise UnmappedMatch(self.page_number, (start, end))
        return merge_bboxes(t.bbox for t in tokens)

    def joined_text(self, start: int, end: int) -> str:
        """Text of the whole tokens touched by [start, end)."""
        return SEPARATOR.join(t.text for t in self.tokens_in(start, end)).strip()


def linearize(page: Page) -> LinearText:
    """
    Join a page's tokens into one string and record each token's offsets.

    Args:
        page: Page of extraction output

    Returns:
        LinearText for the page
    """
    spans = []
    offset = 0
    for token in page.tokens:
        start = offset
        end = start + len(token.text)
        spans.append(TokenSpan(token=token, start=start, end=end))
        offset = end + len(SEPARATOR)

    text = SEPARATOR.join(token.text for token in page.tokens)
    return LinearText(page_number=page.page_number, text=text, spans=tuple(spans))
