# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Evidence histogram for stacks overlapping on opposite strands.

Cells are indexed by::

    [offset][height score bin][plus uridine][minus uridine][local height]

The offset axis covers ``MIN_OFFSET..MAX_OFFSET`` inclusive. Ping-pong
stacks overlap by ``SIGNAL_DISTANCE`` nt; every other offset contributes to
the background estimate.
"""

from enum import IntEnum

import numpy as np
import pandas as pd

# true ping-pong stacks overlap by this many nt
SIGNAL_DISTANCE = 10

# overlaps in this band (except SIGNAL_DISTANCE) estimate background noise
MIN_OFFSET = 0
MAX_OFFSET = 20

HEIGHT_SCORE_BINS = 1000


class Uridine(IntEnum):
    IS_URIDINE = 0
    IS_NOT_URIDINE = 1


class LocalHeight(IntEnum):
    IS_ABOVE_COVERAGE = 0
    IS_BELOW_COVERAGE = 1


DIMENSIONS = ('height_score', 'plus_uridine', 'minus_uridine', 'local_height')


class EvidenceHistogram:
    """Counts of overlapping stack pairs, grouped by offset and class.

    Args:
        counts: Existing array of shape ``(offsets, bins, 2, 2, 2)``. A zero
            array is allocated when omitted.
        n_bins: Number of height score bins for a new array.
        bin_edges: Raw height score bin boundaries, one more than the number
            of bins. Bin ``i`` covers raw bins ``bin_edges[i]`` up to
            ``bin_edges[i + 1] - 1``. Unit steps for a raw histogram, coarser
            after :func:`~pingpong.core.collapse.collapse_bins`.
    """

    def __init__(self, counts=None, n_bins=HEIGHT_SCORE_BINS, min_offset=MIN_OFFSET,
                 max_offset=MAX_OFFSET, signal_distance=SIGNAL_DISTANCE, bin_edges=None):
        if not min_offset <= signal_distance <= max_offset:
            raise ValueError('signal distance must lie within the offset band')
        self.min_offset = min_offset
        self.max_offset = max_offset
        self.signal_distance = signal_distance
        _n_offsets = max_offset - min_offset + 1
        if counts is None:
            counts = np.zeros((_n_offsets, n_bins, 2, 2, 2), dtype=np.float64)
        self.counts = np.asarray(counts, dtype=np.float64)
        if self.counts.shape[0] != _n_offsets or self.counts.shape[2:] != (2, 2, 2):
            raise ValueError(f'unexpected histogram shape {self.counts.shape}')
        if bin_edges is None:
            bin_edges = np.arange(self.counts.shape[1] + 1)
        self.bin_edges = np.asarray(bin_edges, dtype=np.int64)
        if len(self.bin_edges) != self.counts.shape[1] + 1:
            raise ValueError('bin_edges must have one entry more than there are height score bins')

    @property
    def shape(self):
        return self.counts.shape

    @property
    def n_bins(self):
        return self.counts.shape[1]

    @property
    def offsets(self):
        return np.arange(self.min_offset, self.max_offset + 1)

    @property
    def signal_index(self):
        return self.signal_distance - self.min_offset

    @property
    def background_indices(self):
        return np.array([i for i in range(len(self.offsets)) if i != self.signal_index], dtype=np.intp)

    def offset_index(self, offset):
        if not self.min_offset <= offset <= self.max_offset:
            raise IndexError(f'offset {offset} outside {self.min_offset}..{self.max_offset}')
        return offset - self.min_offset

    def __getitem__(self, offset):
        """Cells of one offset (nt distance, not array index)."""
        return self.counts[self.offset_index(offset)]

    def copy(self):
        return type(self)(
            self.counts.copy(),
            min_offset=self.min_offset,
            max_offset=self.max_offset,
            signal_distance=self.signal_distance,
            bin_edges=self.bin_edges.copy(),
        )

    def total(self):
        return float(self.counts.sum())

    def marginal(self, dimension):
        """Sum every offset's cells down to one of the four class dimensions.

        Args:
            dimension: Name from ``DIMENSIONS`` or its position (0-3).

        Returns:
            Array of shape ``(offsets, size of dimension)``.
        """
        if isinstance(dimension, str):
            dimension = DIMENSIONS.index(dimension)
        axes = tuple(a for a in (1, 2, 3, 4) if a != dimension + 1)
        return self.counts.sum(axis=axes)

    def to_frame(self):
        """Long-format table of non-zero cells."""
        idx = np.nonzero(self.counts)
        return pd.DataFrame({
            'offset': self.offsets[idx[0]],
            'bin': idx[1],
            'raw_bin_start': self.bin_edges[idx[1]],
            'raw_bin_end': self.bin_edges[idx[1] + 1] - 1,
            'plus_uridine': [Uridine(i).name for i in idx[2]],
            'minus_uridine': [Uridine(i).name for i in idx[3]],
            'local_height': [LocalHeight(i).name for i in idx[4]],
            'count': self.counts[idx],
        })

    def save(self, filename, **extra):
        np.savez(
            filename,
            _counts=self.counts,
            _bin_edges=self.bin_edges,
            _band=np.array([self.min_offset, self.max_offset, self.signal_distance]),
            **extra
        )

    @classmethod
    def load(cls, filename):
        with np.load(filename) as loader:
            min_offset, max_offset, signal_distance = (int(v) for v in loader['_band'])
            return cls(
                loader['_counts'],
                min_offset=min_offset,
                max_offset=max_offset,
                signal_distance=signal_distance,
                bin_edges=loader['_bin_edges'],
            )
