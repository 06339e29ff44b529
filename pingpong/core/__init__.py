# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Scoring engine: stacks, height scores, overlap grouping and bin collapsing."""

from .collapse import collapse_bins  # noqa: F401
from .grouping import group_stacks  # noqa: F401
from .heights import HeightScoreMap, map_heights_to_scores  # noqa: F401
from .histogram import EvidenceHistogram  # noqa: F401
from .stacks import GenomeCounts, MultiHits, StackConfig, Strand, count_stacks  # noqa: F401
