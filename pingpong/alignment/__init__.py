# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Alignment input for PingPong.

Records are consumed through the pysam ``AlignedSegment`` interface.
"""

# CIGAR operation codes as reported by pysam ``cigartuples``
CMATCH = 0
CINS = 1
CDEL = 2
CREF_SKIP = 3
CSOFT_CLIP = 4
CHARD_CLIP = 5
CPAD = 6
CEQUAL = 7
CDIFF = 8

# Operations that advance along the reference
REFERENCE_CONSUMING = frozenset([CMATCH, CDEL, CREF_SKIP, CEQUAL, CDIFF])

# Tag holding the number of reported alignments for a read
MULTIHIT_TAG = 'NH'


class HeaderMismatchError(ValueError):
    """Input files do not share the same ordered set of references."""


class AlignmentDecodeError(ValueError):
    """A mapped record is missing data needed to locate its 5' end."""
