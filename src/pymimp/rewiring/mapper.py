"""
Mapping of point mutations onto phosphosite flanking windows.

A mutation is a candidate rewiring event (a pSNV) for every phosphosite of
the same gene whose window [pos - flank, pos + flank] contains it. Sites are
sorted once per gene so each mutation is resolved with two binary searches.
"""

import logging
from bisect import bisect_left, bisect_right
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .models import CandidateRewiringEvent, MappingResult, Mutation, PhosphoSite
from .window import DEFAULT_FLANK, DEFAULT_PAD, flanking_sequence

logger = logging.getLogger(__name__)


def _index_sites(sites: Sequence[PhosphoSite]) -> Dict[str, Tuple[List[int], List[int]]]:
    """Group site indices by gene, sorted by position.

    Returns:
        Dict mapping gene to (sorted positions, matching indices into sites)
    """
    by_gene: Dict[str, List[Tuple[int, int]]] = defaultdict(list)
    for idx, site in enumerate(sites):
        by_gene[site.gene].append((site.position, idx))

    index = {}
    for gene, entries in by_gene.items():
        entries.sort()
        index[gene] = ([pos for pos, _ in entries], [idx for _, idx in entries])
    return index


def find_overlaps(
    mutations: Sequence[Mutation],
    sites: Sequence[PhosphoSite],
    flank: int = DEFAULT_FLANK,
) -> List[Tuple[int, int]]:
    """Find (mutation index, site index) pairs whose intervals intersect.

    Pairs are ordered by mutation, then by site input order.
    """
    index = _index_sites(sites)
    hits = []

    for m_idx, mut in enumerate(mutations):
        gene_sites = index.get(mut.gene)
        if gene_sites is None:
            continue
        positions, site_indices = gene_sites
        lo = bisect_left(positions, mut.position - flank)
        hi = bisect_right(positions, mut.position + flank)
        for s_idx in sorted(site_indices[lo:hi]):
            hits.append((m_idx, s_idx))

    return hits


def _site_window(
    site: PhosphoSite,
    sequences: Optional[Mapping[str, str]],
    flank: int,
    pad: str,
    cache: Dict[int, Optional[str]],
    s_idx: int,
) -> Optional[str]:
    """Wild-type window for a site, extracted once per site."""
    if s_idx not in cache:
        window = None
        if sequences is not None and site.gene in sequences:
            window = flanking_sequence(sequences[site.gene], site.position, flank, pad)
        elif site.sequence_window:
            window = site.sequence_window
        cache[s_idx] = window
    return cache[s_idx]


def map_psnvs(
    mutations: Sequence[Mutation],
    sites: Sequence[PhosphoSite],
    sequences: Optional[Mapping[str, str]] = None,
    flank: int = DEFAULT_FLANK,
    pad: str = DEFAULT_PAD,
) -> MappingResult:
    """Find mutations in the flanking regions of phosphosites.

    Args:
        mutations: Point mutations
        sites: Phosphosites; must carry sequence_window when sequences is None
        sequences: Full-length sequences keyed by gene, or None to use the
            windows supplied on the sites
        flank: Residues on each side of the site
        pad: Padding character for windows at sequence ends

    Returns:
        MappingResult with one candidate per overlapping (mutation, site)
        pair whose window agrees with the mutation's reference residue
    """
    hits = find_overlaps(mutations, sites, flank)
    windows: Dict[int, Optional[str]] = {}
    candidates = []
    n_mismatch = 0
    n_missing = 0

    for m_idx, s_idx in hits:
        mut = mutations[m_idx]
        site = sites[s_idx]

        wt = _site_window(site, sequences, flank, pad, windows, s_idx)
        if wt is None:
            n_missing += 1
            continue

        offset = mut.position - site.position
        # 0-based form of mut.position - (site.position - flank) + 1
        rel = offset + flank

        if rel >= len(wt) or wt[rel] != mut.ref_aa:
            n_mismatch += 1
            continue

        mt = wt[:rel] + mut.alt_aa + wt[rel + 1:]

        gene = site.gene
        if sequences is None and site.symbol:
            gene = f"{site.gene} ({site.symbol})"

        candidates.append(CandidateRewiringEvent(
            gene=gene,
            mutation=mut,
            site_position=site.position,
            mutation_offset=offset,
            wt_window=wt,
            mt_window=mt,
        ))

    if n_mismatch:
        logger.info(
            f"Dropped {n_mismatch} of {len(hits)} mutation-site pairs with a "
            "reference residue that does not match the sequence"
        )
    if n_missing:
        logger.warning(f"Dropped {n_missing} mutation-site pairs without sequence data")

    return MappingResult(
        candidates=candidates,
        n_overlaps=len(hits),
        n_reference_mismatch=n_mismatch,
        n_missing_sequence=n_missing,
    )
