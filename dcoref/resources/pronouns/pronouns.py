from typing import Dict, Set

males_pronouns = {"he", "him", "his", "himself"}
females_pronouns = {"she", "her", "hers", "herself"}
neutral_pronouns = {"it", "its", "itself", "where", "here", "there", "which"}

singular_pronouns = {
    "i",
    "me",
    "myself",
    "mine",
    "my",
    "yourself",
    "he",
    "him",
    "himself",
    "his",
    "she",
    "her",
    "herself",
    "hers",
    "it",
    "its",
    "itself",
}
plural_pronouns = {
    "we",
    "us",
    "ourself",
    "ourselves",
    "ours",
    "our",
    "yourselves",
    "they",
    "them",
    "themselves",
    "theirs",
    "their",
}

first_person_pronouns = {
    "i",
    "me",
    "myself",
    "mine",
    "my",
    "we",
    "us",
    "ourself",
    "ourselves",
    "ours",
    "our",
}
second_person_pronouns = {"you", "yourself", "yours", "your", "yourselves"}
third_person_pronouns = (
    males_pronouns
    | females_pronouns
    | {"it", "its", "itself", "they", "them", "themselves", "theirs", "their"}
)

all_pronouns = (
    first_person_pronouns
    | second_person_pronouns
    | third_person_pronouns
    | neutral_pronouns
)

#: pronouns by ISO 639-3 lang
pronouns_by_lang: Dict[str, Set[str]] = {"eng": all_pronouns}


def is_a_pronoun(word: str, lang: str = "eng") -> bool:
    try:
        return word.lower() in pronouns_by_lang[lang]
    except KeyError:
        raise ValueError(
            f"unsupported lang for is_a_pronoun: {lang} (supported langs: {list(pronouns_by_lang.keys())})"
        )


def pronoun_person(word: str) -> int:
    """
    :return: ``1``, ``2`` or ``3``, or ``0`` if ``word`` is not a
             personal pronoun.
    """
    word = word.lower()
    if word in first_person_pronouns:
        return 1
    if word in second_person_pronouns:
        return 2
    if word in third_person_pronouns:
        return 3
    return 0
