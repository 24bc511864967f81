from __future__ import annotations
from typing import Dict, List, Optional, Tuple
from collections import defaultdict
from networkx.utils import UnionFind
from dcoref.pipeline.corefs.mentions import CorefChain
from dcoref.pipeline.corefs.dictionaries import Dictionaries
from dcoref.pipeline.corefs.arrangement import ArrangedDocument
from dcoref.pipeline.corefs.sieves import SIEVES, Sieve

#: ``((sentence, mention), (sentence, mention))``, indices starting at 0
MentionLink = Tuple[Tuple[int, int], Tuple[int, int]]

SIEVES_PROP = "dcoref.sieves"
MAX_DIST_PROP = "dcoref.maxDist"


class CoreferenceResolver:
    """Partitions the mentions of an arranged document into chains.

    A resolver is shared between documents annotated concurrently: it
    must not be mutated by :meth:`coref`.
    """

    @property
    def dictionaries(self) -> Dictionaries:
        raise NotImplementedError()

    def coref(self, document: ArrangedDocument) -> Dict[int, CorefChain]:
        """
        :return: a mapping from chain id to chain.  Must be
                 deterministic given the same document.
        """
        raise NotImplementedError()


def get_links(chains: Dict[int, CorefChain]) -> List[MentionLink]:
    """Convert coreference chains to coreference links.

    Each mention is linked to every mention appearing before it in its
    chain, so that a chain of n mentions gives ``n * (n - 1) / 2``
    links.

    :return: a list of ``(mention position, antecedent position)``,
             where positions are ``(sentence index, index of the
             mention in its sentence)``, starting at 0.
    """
    links = []
    for chain in chains.values():
        for i, mention in enumerate(chain.mentions):
            for antecedent in chain.mentions[:i]:
                links.append((mention.position(), antecedent.position()))
    return links


class SieveCoreferenceResolver(CoreferenceResolver):
    """A deterministic multi-pass coreference resolver.

    Lee, H., Chang, A., Peirsman, Y., Chambers, N., Surdeanu, M., &
    Jurafsky, D. (2013).  Deterministic Coreference Resolution Based on
    Entity-Centric, Precision-Ranked Rules.  Computational Linguistics.
    """

    DEFAULT_SIEVES = [
        "speaker_match",
        "exact_string_match",
        "strict_head_match",
        "pronoun_match",
    ]

    def __init__(
        self,
        sieves: Optional[List[str]] = None,
        dictionaries: Optional[Dictionaries] = None,
        props: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        :param sieves: names of the sieves to apply, in order.  See
            :data:`.SIEVES` for possible values.  Defaults to the
            ``dcoref.sieves`` property (a comma separated list) if
            given, or to ``SieveCoreferenceResolver.DEFAULT_SIEVES``.
        :param dictionaries: if ``None``, default dictionaries are
            used.
        :param props: ``dcoref.*`` string properties.  They are kept
            as is in ``self.props``.  ``dcoref.maxDist`` is the
            maximum sentence distance between a mention and its
            antecedent (-1, the default, means no limit).
        """
        self.props = dict(props or {})

        if sieves is None and SIEVES_PROP in self.props:
            sieves = [
                s.strip() for s in self.props[SIEVES_PROP].split(",") if s.strip()
            ]
        sieves = sieves or SieveCoreferenceResolver.DEFAULT_SIEVES
        unknown_sieves = [s for s in sieves if not s in SIEVES]
        if len(unknown_sieves) > 0:
            raise ValueError(
                f"unknown sieves: {unknown_sieves} (available sieves: {list(SIEVES.keys())})"
            )
        self.sieves_names = list(sieves)
        self.sieves: List[Sieve] = [SIEVES[s] for s in sieves]
        self._dictionaries = dictionaries or Dictionaries()
        self.max_dist = int(self.props.get(MAX_DIST_PROP, "-1"))

    @property
    def dictionaries(self) -> Dictionaries:
        return self._dictionaries

    @staticmethod
    def signature(props: Dict[str, str]) -> str:
        """A string identifying a resolver configuration, to be used
        as a cache key.

        :param props: resolver properties.  Only ``dcoref.*``
            properties are considered.
        """
        return "".join(
            f"{key}:{value};"
            for key, value in sorted(props.items())
            if key.startswith("dcoref.")
        )

    def coref(self, document: ArrangedDocument) -> Dict[int, CorefChain]:
        mentions = document.all_mentions()
        clusters = UnionFind([m.mention_id for m in mentions])

        for sieve in self.sieves:
            for mention_i, mention in enumerate(mentions):
                # candidates are examined from the closest to the
                # farthest
                for antecedent in reversed(mentions[:mention_i]):
                    if (
                        self.max_dist >= 0
                        and mention.sent_num - antecedent.sent_num > self.max_dist
                    ):
                        break
                    if clusters[antecedent.mention_id] == clusters[mention.mention_id]:
                        continue
                    if sieve(mention, antecedent, document, self.dictionaries):
                        clusters.union(antecedent.mention_id, mention.mention_id)
                        break

        chains_mentions = defaultdict(list)
        for mention in mentions:
            chains_mentions[clusters[mention.mention_id]].append(mention)

        # a chain is identified by the id of its first mention
        chains = {}
        for chain_mentions in chains_mentions.values():
            chain_id = chain_mentions[0].mention_id
            chains[chain_id] = CorefChain.from_mentions(chain_id, chain_mentions)
        return dict(sorted(chains.items()))
