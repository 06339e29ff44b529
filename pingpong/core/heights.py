# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Height scores: how many stacks genome-wide share a given height."""

import logging as lg

import numpy as np


def round_heights(reads):
    """Round stack heights half-up to non-negative integers."""
    return np.floor(np.asarray(reads, dtype=np.float64) + 0.5).astype(np.int64)


def truncate_heights(reads):
    """Drop the fractional part of stack heights."""
    return np.trunc(np.asarray(reads, dtype=np.float64)).astype(np.int64)


class HeightScoreMap:
    """Frequency of every rounded stack height.

    Lower frequency means a rarer stack height. The map is read-only once
    built by :func:`map_heights_to_scores`.
    """

    def __init__(self, heights=(), frequencies=()):
        self.heights = np.asarray(heights, dtype=np.int64)
        self.frequencies = np.asarray(frequencies, dtype=np.int64)
        if self.heights.shape != self.frequencies.shape:
            raise ValueError('heights and frequencies must have the same length')
        if np.any(np.diff(self.heights) <= 0):
            raise ValueError('heights must be strictly increasing')

    def __len__(self):
        return len(self.heights)

    def __getitem__(self, height):
        i = np.searchsorted(self.heights, height)
        if i < len(self.heights) and self.heights[i] == height:
            return int(self.frequencies[i])
        return 0

    def items(self):
        return zip(self.heights.tolist(), self.frequencies.tolist())

    def lookup(self, reads):
        """Frequencies for an array of stack heights.

        The map is keyed by rounded heights, but lookups truncate: a stack of
        1.5 reads scores as height 1, not 2. Heights that were never observed
        score 0.
        """
        _heights = truncate_heights(reads)
        if len(self.heights) == 0:
            return np.zeros(_heights.shape, dtype=np.int64)
        i = np.searchsorted(self.heights, _heights)
        i_c = np.minimum(i, len(self.heights) - 1)
        found = (i < len(self.heights)) & (self.heights[i_c] == _heights)
        return np.where(found, self.frequencies[i_c], 0)

    def smallest_height_frequency(self):
        """Frequency of the smallest observed height."""
        if len(self.heights) == 0:
            raise ValueError('height score map is empty')
        return int(self.frequencies[0])


def map_heights_to_scores(counts):
    """Count how many stacks of each rounded height exist on both strands.

    Args:
        counts: :class:`~pingpong.core.stacks.GenomeCounts`.

    Returns:
        :class:`HeightScoreMap`.
    """
    heights, frequencies = np.unique(round_heights(counts.all_reads()), return_counts=True)
    lg.info('Height score map: {} distinct stack heights'.format(len(heights)))
    return HeightScoreMap(heights, frequencies)
