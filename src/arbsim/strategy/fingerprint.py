"""
Opportunity fingerprinting.

A fingerprint identifies the *shape* of an opportunity: its kind, the
set of venues, the set of instruments and the quoted spread at a fixed
granularity. Opportunities that agree on all of these collide on
purpose, which is what lets admission control throttle repeats of "the
same" trade even though every detection carries fresh quotes.
"""

import hashlib

from arbsim.config.constants import (
    FINGERPRINT_DELIMITER,
    FINGERPRINT_LENGTH,
    FINGERPRINT_SPREAD_DECIMALS,
)
from arbsim.core.types import ArbitragePath


def fingerprint(path: ArbitragePath) -> str:
    """
    Compute the stable identity of a path.

    Exchanges and pairs are sorted independently, so the result does not
    depend on hop order. The spread between the last and first quote is
    rounded to FINGERPRINT_SPREAD_DECIMALS places.

    Args:
        path: Arbitrage path.

    Returns:
        FINGERPRINT_LENGTH lowercase hex characters of a SHA-256 digest.

    Example:
        >>> len(fingerprint(path))
        32
    """
    spread = round(path.spread, FINGERPRINT_SPREAD_DECIMALS)
    components = (
        path.kind.value,
        ",".join(sorted(path.exchanges)),
        ",".join(sorted(path.pairs)),
        f"{spread:.{FINGERPRINT_SPREAD_DECIMALS}f}",
    )
    digest = hashlib.sha256(FINGERPRINT_DELIMITER.join(components).encode("utf-8"))
    return digest.hexdigest()[:FINGERPRINT_LENGTH]
