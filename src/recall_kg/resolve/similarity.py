"""String similarity primitives.

Pure functions, no normalization: callers pass strings that are already
lowercased and whitespace-collapsed.
"""

# Winkler's prefix bonus never looks past this many characters
MAX_PREFIX_LENGTH = 4


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance (insert, delete, substitute) between two strings."""
    m, n = len(s1), len(s2)
    dp = [[0] * (n + 1) for _ in range(m + 1)]

    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if s1[i - 1] == s2[j - 1]:
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = 1 + min(dp[i - 1][j], dp[i][j - 1], dp[i - 1][j - 1])

    return dp[m][n]


def jaro_similarity(s1: str, s2: str) -> float:
    """Jaro similarity in [0, 1]; 1.0 for identical strings."""
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    len1, len2 = len(s1), len(s2)
    match_distance = max(max(len1, len2) // 2 - 1, 0)

    s1_matches = [False] * len1
    s2_matches = [False] * len2
    matches = 0

    for i in range(len1):
        start = max(0, i - match_distance)
        end = min(i + match_distance + 1, len2)
        for j in range(start, end):
            if s2_matches[j] or s1[i] != s2[j]:
                continue
            s1_matches[i] = True
            s2_matches[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    # Matched characters that appear in a different order
    transpositions = 0
    k = 0
    for i in range(len1):
        if not s1_matches[i]:
            continue
        while not s2_matches[k]:
            k += 1
        if s1[i] != s2[k]:
            transpositions += 1
        k += 1

    return (
        matches / len1
        + matches / len2
        + (matches - transpositions / 2) / matches
    ) / 3


def jaro_winkler_similarity(s1: str, s2: str, prefix_scale: float = 0.1) -> float:
    """Jaro similarity boosted by the length of the common prefix."""
    jaro = jaro_similarity(s1, s2)

    prefix_length = 0
    for c1, c2 in zip(s1[:MAX_PREFIX_LENGTH], s2[:MAX_PREFIX_LENGTH]):
        if c1 != c2:
            break
        prefix_length += 1

    return jaro + prefix_length * prefix_scale * (1 - jaro)
