from __future__ import annotations
from typing import FrozenSet, Optional
from dataclasses import dataclass
from dcoref.resources import pronouns as pr
from dcoref.pipeline.corefs.mentions import Gender, Mention, MentionType, Number


@dataclass(frozen=True)
class Dictionaries:
    """Lexical resources used for coreference.

    A single instance is shared, read-only, by every document
    annotated with the same resolver.
    """

    male_pronouns: FrozenSet[str] = frozenset(pr.males_pronouns)
    female_pronouns: FrozenSet[str] = frozenset(pr.females_pronouns)
    neutral_pronouns: FrozenSet[str] = frozenset(pr.neutral_pronouns)
    singular_pronouns: FrozenSet[str] = frozenset(pr.singular_pronouns)
    plural_pronouns: FrozenSet[str] = frozenset(pr.plural_pronouns)
    all_pronouns: FrozenSet[str] = frozenset(pr.all_pronouns)
    #: words which are never the head of a mention
    non_words: FrozenSet[str] = frozenset({"mm", "hmm", "ahem", "um", "uh"})

    def is_pronoun(self, word: str) -> bool:
        return word.lower() in self.all_pronouns

    def mention_type(self, mention: Mention, head_pos: Optional[str]) -> MentionType:
        if len(mention.tokens) == 1 and self.is_pronoun(mention.head_word):
            return "PRONOMINAL"
        if not head_pos is None and head_pos.startswith("PRP"):
            return "PRONOMINAL"
        if not head_pos is None and head_pos.startswith("NNP"):
            return "PROPER"
        return "NOMINAL"

    def gender(self, mention: Mention) -> Gender:
        head = mention.head_word.lower()
        if head in self.male_pronouns:
            return "MALE"
        if head in self.female_pronouns:
            return "FEMALE"
        if head in self.neutral_pronouns:
            return "NEUTRAL"
        return "UNKNOWN"

    def number(self, mention: Mention, head_pos: Optional[str]) -> Number:
        head = mention.head_word.lower()
        if head in self.singular_pronouns:
            return "SINGULAR"
        if head in self.plural_pronouns:
            return "PLURAL"
        if head_pos in {"NNS", "NNPS"}:
            return "PLURAL"
        if head_pos in {"NN", "NNP"}:
            return "SINGULAR"
        return "UNKNOWN"

    def person(self, mention: Mention) -> int:
        if mention.mention_type != "PRONOMINAL":
            return 0
        return pr.pronoun_person(mention.head_word)
