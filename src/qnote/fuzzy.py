from __future__ import annotations

# score = matched chars * SCORE_MATCH + bonuses - penalties, floored at 1
SCORE_MATCH = 16
BONUS_BOUNDARY = 10
BONUS_START = 8
# one adjacent pair outweighs a boundary hit plus the start bonus
BONUS_CONSECUTIVE = 24
PENALTY_GAP = 1
MAX_GAP_PENALTY = 24
MAX_LENGTH_PENALTY = 24
# cap on alternative alignments tried for the first query character
MAX_STARTS = 64
NEUTRAL = 1


def _is_boundary(text: str, i: int) -> bool:
    if i == 0:
        return True
    prev, cur = text[i - 1], text[i]
    if not prev.isalnum():
        return True
    return prev.islower() and cur.isupper()


def _align(q: str, low: str, start: int) -> list[int] | None:
    positions = [start]
    pos = start + 1
    for ch in q[1:]:
        pos = low.find(ch, pos)
        if pos < 0:
            return None
        positions.append(pos)
        pos += 1
    return positions


def _score_positions(candidate: str, positions: list[int], qlen: int) -> int:
    score = qlen * SCORE_MATCH
    gaps = 0
    for n, pos in enumerate(positions):
        if _is_boundary(candidate, pos):
            score += BONUS_BOUNDARY
        if n and pos == positions[n - 1] + 1:
            score += BONUS_CONSECUTIVE
        elif n:
            gaps += pos - positions[n - 1] - 1
    if positions[0] == 0:
        score += BONUS_START
    score -= min(gaps * PENALTY_GAP, MAX_GAP_PENALTY)
    score -= min((len(candidate) - qlen) // 4, MAX_LENGTH_PENALTY)
    return max(score, NEUTRAL)


def score(query: str, candidate: str) -> int:
    """
    Rank `candidate` against `query`; 0 means no match.

    A match requires the query characters, case-insensitively, to appear in
    order in the candidate. Among matches, contiguous runs, word-boundary
    hits and shorter candidates score higher. An empty query matches
    everything with the neutral score.
    """
    if not query:
        return NEUTRAL
    q, low = query.lower(), candidate.lower()
    if len(low) != len(candidate):
        # lower() changed the length (e.g. 'İ'); align on the folded text only
        candidate = low

    best = 0
    start = low.find(q[0])
    tries = 0
    while start >= 0 and tries < MAX_STARTS:
        positions = _align(q, low, start)
        if positions is None:
            # later starts only see a shorter suffix; they fail too
            break
        best = max(best, _score_positions(candidate, positions, len(q)))
        start = low.find(q[0], start + 1)
        tries += 1
    return best


def rank(query: str, candidates: list[str]) -> list[tuple[int, int]]:
    """(index, score) for every matching candidate, best score first, then by index."""
    scored = [(i, score(query, c)) for i, c in enumerate(candidates)]
    return sorted(((i, s) for i, s in scored if s > 0), key=lambda m: (-m[1], m[0]))
