"""Fuzzy name matching for free-text teammate and avoid requests.

Handles nickname variations, typos, concatenated names ("mikesmith") and
phonetic look-alikes, and reports how confident each match is.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

logger = logging.getLogger("team_builder.name_matcher")

EXACT = "exact"
HIGH = "high"
MEDIUM = "medium"
LOW = "low"

DEFAULT_MATCH_THRESHOLD = 0.6
SUGGESTION_THRESHOLD = 0.3

# formal name -> (formal spellings, nicknames, diminutives)
NICKNAME_DATABASE: Dict[str, Tuple[List[str], List[str], List[str]]] = {
    "alexander": (["Alexander"], ["Alex", "Alec", "Xander", "Lex", "Al"], ["Sandy", "Sasha"]),
    "alexandra": (["Alexandra"], ["Alex", "Alexa", "Lexi", "Lexie", "Sandra", "Allie"], ["Sandy", "Sasha"]),
    "andrew": (["Andrew"], ["Andy", "Drew"], ["Anders"]),
    "anthony": (["Anthony"], ["Tony", "Ant"], ["Anton"]),
    "benjamin": (["Benjamin"], ["Ben", "Benny"], ["Benji"]),
    "brianna": (["Brianna"], ["Bri", "Bree"], ["Anna"]),
    "bridget": (["Bridget"], ["Bri", "Bridge"], ["Birdie"]),
    "catherine": (["Catherine", "Katherine"], ["Cat", "Cathy", "Kate", "Katie", "Kitty"], ["Cate"]),
    "charles": (["Charles"], ["Charlie", "Chuck", "Chas"], ["Chaz"]),
    "christopher": (["Christopher"], ["Chris", "Kit", "Topher"], ["Christie"]),
    "daniel": (["Daniel"], ["Dan", "Danny"], ["Dani"]),
    "david": (["David"], ["Dave", "Davey"], ["Davy"]),
    "deborah": (["Deborah"], ["Deb", "Debbie", "Debby"], ["Debs"]),
    "edward": (["Edward"], ["Ed", "Eddie", "Ted", "Ned"], ["Teddy"]),
    "elizabeth": (["Elizabeth"], ["Liz", "Beth", "Betsy", "Eliza", "Libby", "Betty"], ["Lizzie", "Liza"]),
    "james": (["James"], ["Jim", "Jimmy", "Jamie"], ["Jimbo"]),
    "jennifer": (["Jennifer"], ["Jen", "Jenny", "Jenni"], ["Jenna"]),
    "jessica": (["Jessica"], ["Jess", "Jessie"], ["Jessi"]),
    "jonathan": (["Jonathan"], ["Jon", "Johnny", "Nathan"], ["Jonny"]),
    "joseph": (["Joseph"], ["Joe", "Joey"], ["Jo"]),
    "kimberly": (["Kimberly"], ["Kim", "Kimmy"], ["Kimber"]),
    "margaret": (["Margaret"], ["Maggie", "Meg", "Peggy"], ["Marge"]),
    "matthew": (["Matthew"], ["Matt", "Matty"], ["Mat"]),
    "michael": (["Michael"], ["Mike", "Mick", "Mickey", "Mikey"], ["Mitch"]),
    "nicholas": (["Nicholas"], ["Nick", "Nicky", "Cole"], ["Nico"]),
    "patricia": (["Patricia"], ["Pat", "Patty", "Patsy", "Tricia"], ["Patti"]),
    "rebecca": (["Rebecca"], ["Becca", "Becky"], ["Reba"]),
    "richard": (["Richard"], ["Rick", "Dick", "Rich", "Richie"], ["Ricky"]),
    "robert": (["Robert"], ["Rob", "Bob", "Bobby", "Robbie", "Bert"], ["Robby"]),
    "samantha": (["Samantha"], ["Sam", "Sammy"], ["Sami"]),
    "stephanie": (["Stephanie"], ["Steph", "Steffi"], ["Stephy"]),
    "steven": (["Steven", "Stephen"], ["Steve", "Stevie"], ["Stevo"]),
    "thomas": (["Thomas"], ["Tom", "Tommy"], ["Thom"]),
    "timothy": (["Timothy"], ["Tim", "Timmy"], ["Timo"]),
    "victoria": (["Victoria"], ["Vicky", "Tori"], ["Vic"]),
    "william": (["William"], ["Will", "Bill", "Billy", "Willie", "Liam"], ["Willy"]),
    "zachary": (["Zachary"], ["Zach", "Zack"], ["Zac"]),
}

_WHITESPACE_RE = re.compile(r"\s+")

_SOUNDEX_CODES = {}
for _letters, _code in (("bfpv", "1"), ("cgjkqsxz", "2"), ("dt", "3"), ("l", "4"), ("mn", "5"), ("r", "6")):
    for _letter in _letters:
        _SOUNDEX_CODES[_letter] = _code


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one input string against one candidate."""

    match: str
    score: float
    confidence: str
    reason: str


@dataclass(frozen=True)
class Resolution:
    """How a free-text reference was resolved against a roster.

    ``status`` is one of "accepted", "verify", "suggestion" or "not-found".
    Only accepted and verify resolutions carry a usable ``index``.
    """

    query: str
    status: str
    index: Optional[int] = None
    match: Optional[MatchResult] = None
    message: str = ""

    @property
    def is_usable(self) -> bool:
        return self.status in ("accepted", "verify")


def levenshtein_distance(str1: str, str2: str) -> int:
    """Edit distance between two strings."""
    previous = list(range(len(str2) + 1))
    for i, char1 in enumerate(str1, start=1):
        current = [i]
        for j, char2 in enumerate(str2, start=1):
            cost = 0 if char1 == char2 else 1
            current.append(min(
                current[j - 1] + 1,
                previous[j] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def levenshtein_similarity(str1: str, str2: str) -> float:
    """Similarity in [0, 1] derived from the edit distance."""
    max_length = max(len(str1), len(str2))
    if max_length == 0:
        return 1.0
    return 1 - levenshtein_distance(str1.lower(), str2.lower()) / max_length


def soundex(name: str) -> str:
    """Simplified Soundex code: first letter plus three digits."""
    letters = [c for c in name.lower() if c.isalpha()]
    if not letters:
        return ""
    first, rest = letters[0], letters[1:]
    codes = [_SOUNDEX_CODES.get(c, "0") for c in rest]
    collapsed = [code for i, code in enumerate(codes) if i == 0 or code != codes[i - 1]]
    digits = [code for code in collapsed if code != "0"][:3]
    return (first + "".join(digits) + "000")[:4]


class FuzzyNameMatcher:
    """Match free-text names against roster names with a confidence score."""

    def __init__(self):
        self._cache: Dict[Tuple[str, Tuple[str, ...], float], List[MatchResult]] = {}
        self._nickname_map: Dict[str, List[str]] = {}
        self._build_nickname_map()

    def _build_nickname_map(self) -> None:
        """Build the reverse lookup so every variant points at its siblings."""
        for base_name, (formal, nicknames, diminutives) in NICKNAME_DATABASE.items():
            all_variants = formal + nicknames + diminutives
            for variant in all_variants:
                entries = self._nickname_map.setdefault(variant.lower(), [])
                entries.append(base_name)
                entries.extend(other for other in all_variants if other != variant)

    def _variants(self, name: str) -> List[str]:
        return [v.lower() for v in self._nickname_map.get(name, [])]

    def _check_concatenated_match(self, input_lower: str, candidate: str) -> Optional[MatchResult]:
        candidate_lower = candidate.lower().strip()
        candidate_no_spaces = _WHITESPACE_RE.sub("", candidate_lower)

        if input_lower == candidate_no_spaces:
            return MatchResult(
                candidate, 0.85, HIGH,
                f'Concatenated name match: "{input_lower}" -> "{candidate}"'
            )

        words = candidate_lower.split()
        if len(words) != 2:
            return None

        first_name, last_name = words
        first_name_variants = self._variants(first_name) or [first_name]
        patterns = {
            first_name + last_name,
            first_name + last_name[0],
            first_name[0] + last_name,
        }
        for variant in first_name_variants:
            patterns.add(variant + last_name)
            patterns.add(variant + last_name[0])

        if input_lower in patterns:
            return MatchResult(
                candidate, 0.82, HIGH,
                f'Name concatenation match: "{input_lower}" -> "{candidate}"'
            )

        similarity = levenshtein_similarity(input_lower, candidate_no_spaces)
        if similarity >= 0.8:
            return MatchResult(
                candidate, similarity * 0.85, HIGH,
                f'Fuzzy concatenation match: "{input_lower}" -> "{candidate}" ({round(similarity * 100)}%)'
            )
        return None

    def match_single(self, input_name: str, candidate: str) -> MatchResult:
        """Match one input against one candidate name.

        Checks run from strongest to weakest evidence and the first hit wins:
        exact, concatenated name, nickname table, Soundex, edit-distance
        similarity and finally substring overlap.

        Args:
            input_name: Free-text name as typed by a player
            candidate: Canonical roster name

        Returns:
            MatchResult with a score in [0, 1] and a confidence tier
        """
        input_lower = input_name.lower().strip()
        candidate_lower = candidate.lower().strip()

        if not input_lower or not candidate_lower:
            return MatchResult(candidate, 0.0, LOW, "Empty name")

        if input_lower == candidate_lower:
            return MatchResult(candidate, 1.0, EXACT, "Exact match")

        if input_name.lower() == candidate.lower():
            return MatchResult(candidate, 0.95, EXACT, "Case-insensitive exact match")

        concatenated = self._check_concatenated_match(input_lower, candidate)
        if concatenated is not None:
            return concatenated

        input_variants = self._variants(input_lower)
        candidate_variants = self._variants(candidate_lower)
        if candidate_lower in input_variants or set(input_variants) & set(candidate_variants):
            return MatchResult(candidate, 0.9, HIGH, f"Nickname match: {input_name} <-> {candidate}")

        if soundex(input_lower) == soundex(candidate_lower):
            return MatchResult(candidate, 0.8, MEDIUM, "Phonetic similarity")

        similarity = levenshtein_similarity(input_lower, candidate_lower)
        if similarity >= 0.8:
            return MatchResult(candidate, similarity, HIGH, f"High similarity ({round(similarity * 100)}%)")
        if similarity >= 0.6:
            return MatchResult(candidate, similarity, MEDIUM, f"Moderate similarity ({round(similarity * 100)}%)")

        if input_lower in candidate_lower or candidate_lower in input_lower:
            ratio = min(len(input_lower), len(candidate_lower)) / max(len(input_lower), len(candidate_lower))
            if ratio >= 0.5:
                return MatchResult(candidate, ratio * 0.7, MEDIUM, "Partial name match")

        return MatchResult(candidate, 0.0, LOW, "No significant similarity found")

    def match(
        self,
        input_name: str,
        candidates: Iterable[str],
        threshold: float = DEFAULT_MATCH_THRESHOLD
    ) -> List[MatchResult]:
        """Find matches for input against multiple candidates.

        Results at or above ``threshold`` are returned best first. The same
        lookups repeat across players, so results are cached.
        """
        candidates = tuple(candidates)
        cache_key = (input_name, candidates, threshold)
        if cache_key in self._cache:
            return self._cache[cache_key]

        results = [self.match_single(input_name, candidate) for candidate in candidates]
        results = [r for r in results if r.score >= threshold]
        results.sort(key=lambda r: r.score, reverse=True)

        self._cache[cache_key] = results
        return results

    def is_likely_match(self, name1: str, name2: str, threshold: float = 0.8) -> bool:
        """Quick check if two names are likely the same person."""
        return self.match_single(name1, name2).score >= threshold

    def get_suggestions(self, partial: str, candidates: Iterable[str], limit: int = 5) -> List[MatchResult]:
        """Low-threshold matches, for "did you mean" style hints."""
        return self.match(partial, candidates, SUGGESTION_THRESHOLD)[:limit]

    def clear_cache(self) -> None:
        self._cache.clear()

    def add_custom_mapping(self, base_name: str, variants: Iterable[str]) -> None:
        """Register extra nicknames for a name, in both directions."""
        lower_base = base_name.lower()
        for variant in variants:
            lower_variant = variant.lower()
            self._nickname_map.setdefault(lower_variant, []).append(lower_base)
            self._nickname_map.setdefault(lower_base, []).append(variant)
        self.clear_cache()

    def load_custom_mappings(self, mapping_path: Path) -> None:
        """Load extra nicknames from a YAML file.

        The file maps a formal name to a list of variants:

            margaret: [Maggie, Greta]

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not a mapping of names to lists
        """
        if not mapping_path.exists():
            raise FileNotFoundError(f"Nickname file not found: {mapping_path}")

        with open(mapping_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError("Nickname file must contain a YAML dictionary")

        for base_name, variants in data.items():
            if not isinstance(variants, list):
                raise ValueError(f"Nicknames for '{base_name}' must be a list")
            self.add_custom_mapping(str(base_name), [str(v) for v in variants])

    def resolve(
        self,
        query: str,
        candidates: List[str],
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        exclude: Optional[int] = None
    ) -> Resolution:
        """Resolve a reference to a single candidate index.

        exact/high matches are accepted, medium matches are accepted but
        flagged for verification, low matches are only suggested and nothing
        above the threshold means the reference was not found.

        Args:
            query: Free-text name
            candidates: Roster names, indexed like the roster
            threshold: Minimum score to accept
            exclude: Candidate index that must never be returned (the requester)

        Returns:
            Resolution describing the outcome
        """
        for result in self.match(query, candidates, threshold):
            index = _candidate_index(candidates, result.match, exclude)
            if index is None:
                continue

            if result.confidence in (EXACT, HIGH):
                if result.confidence != EXACT or result.match.strip() != query.strip():
                    logger.debug('Resolved "%s" as "%s" (%s)', query, result.match, result.reason)
                return Resolution(query, "accepted", index, result)
            if result.confidence == MEDIUM:
                return Resolution(
                    query, "verify", index, result,
                    f'"{query}" matched "{result.match}" ({result.reason}); please verify'
                )
            return Resolution(
                query, "suggestion", None, result,
                f'"{query}" not matched; did you mean "{result.match}"?'
            )

        for suggestion in self.get_suggestions(query, candidates, limit=3):
            if _candidate_index(candidates, suggestion.match, exclude) is not None:
                return Resolution(
                    query, "not-found", None, suggestion,
                    f'"{query}" not found in roster; did you mean "{suggestion.match}"?'
                )
        return Resolution(query, "not-found", message=f'"{query}" not found in roster')


def _candidate_index(candidates: List[str], name: str, exclude: Optional[int]) -> Optional[int]:
    for index, candidate in enumerate(candidates):
        if candidate == name and index != exclude:
            return index
    return None
