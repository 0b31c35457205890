"""Name normalization, component extraction and nickname variations."""

import re
import unicodedata
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

# Anything outside letters, digits, whitespace, apostrophe and hyphen
_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9\s'-]")
_NON_LETTER_RE = re.compile(r'[^a-z]')
_REPEAT_RE = re.compile(r'(.)\1+')

# Typographic apostrophes as exported by some telematics portals
_APOSTROPHES = str.maketrans({'’': "'", '‘': "'", '`': "'"})

# Soundex digit per letter; 0 marks letters that are dropped
_SOUNDEX = str.maketrans(
    'aeiouyhwbfpvcgjkqsxzdtlmnr',
    '00000000111122222222334556',
)

NAME_VARIATIONS: dict[str, list[str]] = {
    'Michael': ['Mike', 'Mick', 'Mickey'],
    'William': ['Bill', 'Will', 'Billy', 'Willie'],
    'James': ['Jim', 'Jimmy', 'Jamie'],
    'Robert': ['Rob', 'Bob', 'Bobby', 'Robbie'],
    'Richard': ['Rick', 'Dick', 'Ricky', 'Rich'],
    'David': ['Dave', 'Davey'],
    'Christopher': ['Chris', 'Kris'],
    'Matthew': ['Matt', 'Matty'],
    'Andrew': ['Andy', 'Drew'],
    'Joseph': ['Joe', 'Joey'],
    'Daniel': ['Dan', 'Danny'],
    'Anthony': ['Tony', 'Ant'],
    'Steven': ['Steve', 'Stevie'],
    'Stephen': ['Steve', 'Stevie'],
    'Kenneth': ['Ken', 'Kenny'],
    'Joshua': ['Josh'],
    'Kevin': ['Kev'],
    'Brian': ['Bri'],
    'George': ['Georgie'],
    'Edward': ['Ed', 'Eddie', 'Ted'],
    'Ronald': ['Ron', 'Ronnie'],
    'Timothy': ['Tim', 'Timmy'],
    'Jason': ['Jay'],
    'Jeffrey': ['Jeff'],
    'Ryan': ['Ry'],
    'Jacob': ['Jake'],
    'Gary': ['Gar'],
    'Nicholas': ['Nick', 'Nicky'],
    'Eric': ['Rick'],
    'Jonathan': ['Jon', 'Johnny'],
    'Johnny': ['John'],
    'Jack': ['John'],
    'Lawrence': ['Larry'],
    'Larry': ['Lawrence'],
    'Justin': ['Just'],
    'Scott': ['Scotty'],
    'Brandon': ['Brand'],
    'Benjamin': ['Ben', 'Benny'],
    'Samuel': ['Sam', 'Sammy'],
    'Gregory': ['Greg'],
    'Frank': ['Frankie'],
    'Raymond': ['Ray'],
    'Alexander': ['Alex', 'Al'],
    'Patrick': ['Pat', 'Paddy'],
    'Dennis': ['Denny'],
    'Gerald': ['Jerry', 'Gerry'],
    'Jerry': ['Gerald'],
    'Jeremy': ['Jerry', 'Jer'],
    'Tyler': ['Ty'],
    'Aaron': ['Aar'],
    'Jose': ['Joey'],
    'Henry': ['Hank', 'Harry'],
    'Harold': ['Harry', 'Hal'],
    'Adam': ['Ad'],
    'Douglas': ['Doug'],
    'Nathan': ['Nate'],
    'Peter': ['Pete'],
    'Zachary': ['Zach', 'Zack'],
    'Kyle': ['Ky'],
    'Walter': ['Walt'],
    'Carl': ['Karl'],
    'Arthur': ['Art', 'Artie'],
    'Roger': ['Rog'],
    'Keith': ['Kieth'],
    'Sean': ['Shaun', 'Shawn'],
    'Christian': ['Chris'],
    'Albert': ['Al', 'Bert'],
    'Wayne': ['Way'],
    'Eugene': ['Gene'],
    'Ralph': ['Ralphie'],
    'Roy': ['Royal'],
    'Louis': ['Lou', 'Louie'],
    'Philip': ['Phil'],
    'Thomas': ['Tom', 'Tommy'],
    'Elizabeth': ['Liz', 'Beth', 'Lizzie'],
    'Katherine': ['Kate', 'Katie', 'Kathy'],
    'Jennifer': ['Jen', 'Jenny'],
    'Rebecca': ['Bec', 'Becky'],
}


def _build_indexes() -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    """Build case-insensitive lookup indexes for NAME_VARIATIONS."""
    by_formal: dict[str, list[str]] = {}
    by_nickname: dict[str, list[str]] = defaultdict(list)
    for formal, nicknames in NAME_VARIATIONS.items():
        by_formal[formal.lower()] = nicknames
        for nickname in nicknames:
            by_nickname[nickname.lower()].append(formal)
    return by_formal, dict(by_nickname)


_NICKNAMES_BY_FORMAL, _FORMALS_BY_NICKNAME = _build_indexes()


@dataclass(frozen=True)
class ExtractedName:
    """First/last/middle components of a full name."""

    first_name: str
    last_name: str
    middle_name: Optional[str] = None


def _capitalize(part: str) -> str:
    return part[:1].upper() + part[1:].lower()


def _capitalize_token(token: str) -> str:
    """Title-case a single name token.

    Hyphenated tokens are capitalized per segment (``smith-jones`` ->
    ``Smith-Jones``). For apostrophe tokens the segment before the first
    apostrophe is capitalized and the remainder upper-cased
    (``o'connor`` -> ``O'CONNOR``).
    """
    if '-' in token:
        return '-'.join(_capitalize(part) for part in token.split('-'))
    if "'" in token:
        head, _, tail = token.partition("'")
        return f"{_capitalize(head)}'{tail.upper()}"
    return _capitalize(token)


def normalize_name(name: str) -> str:
    """Canonicalize a free-text person name.

    Accented letters are folded to ASCII, characters other than letters,
    digits, spaces, apostrophes and hyphens are dropped, whitespace is
    collapsed and every token is title-cased. The result is stable under
    repeated normalization.

    Args:
        name: Raw name as reported by a source system.

    Returns:
        Normalized name, or an empty string for blank input.
    """
    if not name:
        return ''
    folded = unicodedata.normalize('NFKD', name.translate(_APOSTROPHES))
    folded = folded.encode('ascii', 'ignore').decode('ascii')
    cleaned = _DISALLOWED_RE.sub('', folded)
    return ' '.join(_capitalize_token(token) for token in cleaned.split())


def extract_names(full_name: str) -> ExtractedName:
    """Split a full name into first, last and middle components.

    Recognizes the ``Last, First [Middle]`` convention when the first comma
    follows a single token, with or without a space after it (``Smith,John``).
    Otherwise the first token is the first name, the last
    token is the last name and anything in between is the middle name.

    Args:
        full_name: Raw or normalized full name.

    Returns:
        ExtractedName with normalized components. A single token yields an
        empty last name.
    """
    if not full_name or not full_name.strip():
        return ExtractedName('', '')

    head, comma, tail = full_name.partition(',')
    if comma and len(head.split()) == 1:
        last_name = normalize_name(head)
        rest = normalize_name(tail).split()
        if last_name and rest:
            middle = ' '.join(rest[1:]) or None
            return ExtractedName(rest[0], last_name, middle)

    parts = normalize_name(full_name).split()
    if not parts:
        return ExtractedName('', '')
    if len(parts) == 1:
        return ExtractedName(parts[0], '')
    if len(parts) == 2:
        return ExtractedName(parts[0], parts[1])
    return ExtractedName(parts[0], parts[-1], ' '.join(parts[1:-1]))


def generate_name_variations(first_name: str, last_name: str) -> set[str]:
    """Generate spellings that may denote the same person.

    Includes the literal name, nickname and formal-name forms of the first
    name combined with the last name, each component alone and the
    initial-based forms ``J Smith`` / ``J. Smith``.

    Args:
        first_name: Given name.
        last_name: Family name, may be empty.

    Returns:
        Set of non-empty name variations.
    """
    variations: set[str] = set()

    def _add(*parts: str) -> None:
        value = ' '.join(p for p in parts if p).strip()
        if value:
            variations.add(value)

    _add(first_name, last_name)

    key = first_name.lower()
    for nickname in _NICKNAMES_BY_FORMAL.get(key, []):
        _add(nickname, last_name)
    for formal in _FORMALS_BY_NICKNAME.get(key, []):
        _add(formal, last_name)

    _add(first_name)
    _add(last_name)

    if first_name and last_name:
        _add(first_name[0], last_name)
        _add(f'{first_name[0]}.', last_name)

    return variations


def standardize_name(name: str) -> str:
    """Return the ``First [Middle] Last`` form used for storage."""
    parts = extract_names(name)
    return ' '.join(
        p for p in (parts.first_name, parts.middle_name, parts.last_name) if p
    )


def phonetic_code(name: str) -> str:
    """Compute a simplified four-character Soundex-style code.

    Vowels and h/w/y are dropped, consonants are mapped to their Soundex
    digit and adjacent repeats collapsed. Short codes are padded with ``0``.
    """
    letters = _NON_LETTER_RE.sub('', normalize_name(name).lower())
    code = letters.translate(_SOUNDEX)
    code = _REPEAT_RE.sub(r'\1', code.replace('0', ''))
    return code[:4].ljust(4, '0')
