# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Merge sparse height score bins until every background cell is populated."""

import logging as lg

import numpy as np

from .histogram import EvidenceHistogram


def collapse_bins(hist):
    """Merge height score bins left to right.

    Consecutive bins are summed into one output bin until none of the
    background offsets' cells in it is empty, then the next output bin is
    started. The signal offset is carried along but never decides when to
    stop merging. The last output bin may stay incomplete when the input
    bins run out.

    Args:
        hist: :class:`~pingpong.core.histogram.EvidenceHistogram`.

    Returns:
        A new :class:`~pingpong.core.histogram.EvidenceHistogram` with the
        same offsets and as many bins as were produced.
    """
    src = hist.counts
    n_bins = src.shape[1]
    bg = hist.background_indices
    collapsed = np.zeros_like(src)
    edges = [hist.bin_edges[0]]

    out = 0
    b = 0
    while b < n_bins:
        while True:
            collapsed[:, out] += src[:, b]
            b += 1
            empty = np.any(collapsed[bg, out] <= 0)
            if not empty or b >= n_bins:
                break
        out += 1
        edges.append(hist.bin_edges[b])

    lg.info('Collapsed {} height score bins into {}'.format(n_bins, out))
    return EvidenceHistogram(
        collapsed[:, :out].copy(),
        min_offset=hist.min_offset,
        max_offset=hist.max_offset,
        signal_distance=hist.signal_distance,
        bin_edges=np.array(edges, dtype=np.int64),
    )
