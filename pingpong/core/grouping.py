# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Group overlapping stacks on opposite strands into the evidence histogram.

Every stack on the plus strand is paired with the minus-strand stacks
``MIN_OFFSET..MAX_OFFSET`` nt downstream of it. Each pair is classified by

- the rarity of the two stack heights (height score bin),
- whether either stack starts with uridine,
- whether the minus-strand stack stands out from its neighbourhood.

Pairs at ``SIGNAL_DISTANCE`` are counted as observed. At every other offset
the uridine status is not looked at; one unit is spread over the four
uridine combinations assuming a fixed uridine rate of ``URIDINE_PROBABILITY``.
"""

import logging as lg

import numpy as np

from .histogram import (
    HEIGHT_SCORE_BINS,
    MAX_OFFSET,
    MIN_OFFSET,
    SIGNAL_DISTANCE,
    EvidenceHistogram,
    LocalHeight,
    Uridine,
)
from .stacks import Strand

# the probability of having uridine at the 5' end of reads (for non-piRNA data)
URIDINE_PROBABILITY = 0.25

# local height scores below this threshold count as IS_BELOW_COVERAGE
LOCAL_HEIGHT_THRESHOLD = 0.2

# plus-strand positions scanned per vectorised block
DEFAULT_CHUNK_SIZE = 500000


def _uridine_weights(p=URIDINE_PROBABILITY):
    """Share of one background observation per [plus uridine][minus uridine] cell."""
    _w = np.empty(2)
    _w[Uridine.IS_URIDINE] = p
    _w[Uridine.IS_NOT_URIDINE] = 1 - p
    return np.outer(_w, _w)


def max_height_score(heights):
    """Ceiling of the combined height score.

    The highest possible score is that of two overlapping stacks with the
    smallest height.
    """
    f0 = float(heights.smallest_height_frequency())
    return np.log10(f0 * f0)


def height_score_bins(combined, max_score, n_bins=HEIGHT_SCORE_BINS):
    """Map combined height scores onto ``0..n_bins-1``.

    ``log10(score) / max_score`` is scaled to the bin range, rounded by
    truncating ``x + 0.5`` and clamped. A zero ceiling leaves nothing to
    scale against, so every score lands in bin 0.
    """
    combined = np.asarray(combined, dtype=np.float64)
    if max_score == 0:
        return np.zeros(combined.shape, dtype=np.intp)
    with np.errstate(divide='ignore', invalid='ignore'):
        x = 0.5 + np.log10(combined) / max_score * (n_bins - 1)
    x = np.nan_to_num(x, nan=0.0, posinf=n_bins - 1, neginf=0.0)
    return np.trunc(np.clip(x, 0, n_bins - 1)).astype(np.intp)


def local_height_bins(minus_heights, mean_vicinity, max_vicinity, band_width):
    """Classify minus-strand stacks against the rest of their neighbourhood.

    The stack's own share is taken out of the neighbourhood mean before
    comparing, and the difference is normalised by the highest stack nearby.
    """
    score = (minus_heights - (mean_vicinity - minus_heights / band_width)) / max_vicinity
    return np.where(score < LOCAL_HEIGHT_THRESHOLD,
                    LocalHeight.IS_BELOW_COVERAGE, LocalHeight.IS_ABOVE_COVERAGE).astype(np.intp)


def _scan_block(hist, plus, plus_scores, minus, minus_scores, max_score, bg_weights):
    """Add the evidence of one block of plus-strand stacks to *hist*."""
    counts = hist.counts
    n_offsets, n_bins = counts.shape[0], counts.shape[1]
    signal_index = hist.signal_index

    targets = plus.positions[:, None] + hist.offsets[None, :]
    idx = np.searchsorted(minus.positions, targets)
    idx_c = np.minimum(idx, len(minus.positions) - 1)
    hit = (idx < len(minus.positions)) & (minus.positions[idx_c] == targets)

    heights = np.where(hit, minus.reads[idx_c], 0.0)
    mean_vicinity = heights.sum(axis=1) / n_offsets
    max_vicinity = heights.max(axis=1)

    # only continue where there are any stacks in the vicinity at all
    rows, cols = np.nonzero(hit & (max_vicinity > 0)[:, None])
    if len(rows) == 0:
        return 0
    minus_idx = idx_c[rows, cols]
    minus_heights = heights[rows, cols]

    score_bins = height_score_bins(plus_scores[rows] * minus_scores[minus_idx], max_score, n_bins)
    local_bins = local_height_bins(minus_heights, mean_vicinity[rows], max_vicinity[rows], n_offsets)

    is_signal = cols == signal_index
    if np.any(is_signal):
        u_plus = np.where(plus.uridine[rows[is_signal]], Uridine.IS_URIDINE, Uridine.IS_NOT_URIDINE)
        u_minus = np.where(minus.uridine[minus_idx[is_signal]], Uridine.IS_URIDINE, Uridine.IS_NOT_URIDINE)
        flat = np.ravel_multi_index(
            (score_bins[is_signal], u_plus, u_minus, local_bins[is_signal]), (n_bins, 2, 2, 2))
        counts[signal_index] += np.bincount(flat, minlength=n_bins * 8).reshape(n_bins, 2, 2, 2)

    is_bg = ~is_signal
    if np.any(is_bg):
        flat = np.ravel_multi_index(
            (cols[is_bg], score_bins[is_bg], local_bins[is_bg]), (n_offsets, n_bins, 2))
        tally = np.bincount(flat, minlength=n_offsets * n_bins * 2).reshape(n_offsets, n_bins, 2)
        bg = hist.background_indices
        counts[bg] += tally[bg][:, :, None, None, :] * bg_weights[None, None, :, :, None]

    return len(rows)


def group_stacks(counts, heights, n_bins=HEIGHT_SCORE_BINS, min_offset=MIN_OFFSET,
                 max_offset=MAX_OFFSET, signal_distance=SIGNAL_DISTANCE,
                 chunk_size=DEFAULT_CHUNK_SIZE):
    """Build the evidence histogram from stacks and their height scores.

    Args:
        counts: :class:`~pingpong.core.stacks.GenomeCounts`.
        heights: :class:`~pingpong.core.heights.HeightScoreMap` built from *counts*.
        chunk_size: Plus-strand stacks processed per vectorised block.

    Returns:
        :class:`~pingpong.core.histogram.EvidenceHistogram`.
    """
    hist = EvidenceHistogram(n_bins=n_bins, min_offset=min_offset,
                             max_offset=max_offset, signal_distance=signal_distance)
    if len(heights) == 0:
        return hist
    max_score = max_height_score(heights)
    lg.debug('Maximum height score: {:.4f}'.format(max_score))
    bg_weights = _uridine_weights()

    _pairs = 0
    minus_contigs = set(counts.contigs(Strand.MINUS))
    for contig in counts.contigs(Strand.PLUS):
        if contig not in minus_contigs:
            continue
        plus = counts.stack_arrays(Strand.PLUS, contig)
        minus = counts.stack_arrays(Strand.MINUS, contig)
        plus_scores = heights.lookup(plus.reads).astype(np.float64)
        minus_scores = heights.lookup(minus.reads).astype(np.float64)
        for start in range(0, len(plus.positions), chunk_size):
            _block = slice(start, start + chunk_size)
            _pairs += _scan_block(
                hist,
                type(plus)(*(a[_block] for a in plus)),
                plus_scores[_block],
                minus,
                minus_scores,
                max_score,
                bg_weights,
            )
    lg.info('Grouped {:,} overlapping stack pairs'.format(_pairs))
    return hist
