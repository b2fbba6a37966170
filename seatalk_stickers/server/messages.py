"""Chat message texts sent by the bot.

WHY: Every user-visible string (promo, usage hint, progress, summary)
lives here so wording changes never touch the dispatcher or job logic,
and tests can compare against the same constants.

HOW: Plain string constants plus two small formatters for the messages
that carry numbers.

RULES:
- Texts use SeaTalk markdown (format 1): **bold**, `code`
- build_summary() returns exactly DONE when nothing failed
- Targets Python 3.10+, written without match/case or PEP 604 unions
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PROMO_TEXT = "Join my group to convert Telegram stickers!"

INVALID_SET = "Invalid Telegram sticker set URL"

USAGE_HINT = (
    INVALID_SET
    + "\nExample usage: `@StickersBot /convert  https://t.me/addstickers/Trashhagain`"
)

DONE = "Done"

JOB_FAILED = "Something went wrong while converting this sticker set, please try again later."


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def build_found_message(count: int, set_name: str) -> str:
    """Progress message posted before the first sticker."""
    return "Found {} stickers in sticker set: **{}**".format(count, set_name)


def build_summary(total: int, failed: int) -> str:
    """Final tally posted after every sticker was attempted.

    RULES:
    - failed == 0 → "Done"
    - otherwise "Converted {total - failed} of {total} stickers." plus a
      note that some sticker types are unsupported
    """
    if failed == 0:
        return DONE
    return (
        "Converted {} of {} stickers.\n"
        "Some sticker types are not supported yet ):"
    ).format(total - failed, total)
