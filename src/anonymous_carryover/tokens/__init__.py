# ABOUTME: Session token package for anonymous visitors.
# ABOUTME: Exports the validator and helpers for minting and parsing tokens.

from anonymous_carryover.tokens.validator import (
    TokenParts,
    TokenValidator,
    mint_session_token,
    parse_token,
    to_base36,
)

__all__ = ["TokenParts", "TokenValidator", "mint_session_token", "parse_token", "to_base36"]
