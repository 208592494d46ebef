"""Edit-distance similarity between strings."""


def levenshtein_distance(a: str, b: str) -> int:
    """
    Compute the Levenshtein edit distance between two strings.

    Insertions, deletions and substitutions each cost 1.  Uses two row
    buffers swapped each iteration, so memory is O(min(len(a), len(b))).

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single-character edits turning a into b
    """
    if a == b:
        return 0

    if len(a) < len(b):
        a, b = b, a

    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    current = [0] * (len(b) + 1)

    for i, a_char in enumerate(a, start=1):
        current[0] = i
        for j, b_char in enumerate(b, start=1):
            cost = 0 if a_char == b_char else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost
            )

        previous, current = current, previous

    return previous[len(b)]


def similarity(a: str, b: str) -> float:
    """
    Similarity in [0, 1] derived from the edit distance.

    Two empty strings are identical (1.0).
    """
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0

    score = 1.0 - levenshtein_distance(a, b) / max_len
    return min(1.0, max(0.0, score))
