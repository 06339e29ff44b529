# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Stack accumulation: per-position, per-strand read counts.

A *stack* is the weighted number of reads whose 5' end falls on one genomic
position of one strand. Only covered positions are stored.
"""

import logging as lg
from collections import Counter, namedtuple
from dataclasses import dataclass
from enum import Enum, IntEnum

import numpy as np

from ..alignment import (
    AlignmentDecodeError,
    CHARD_CLIP,
    CSOFT_CLIP,
    MULTIHIT_TAG,
    REFERENCE_CONSUMING,
)


class Strand(IntEnum):
    PLUS = 0
    MINUS = 1


class MultiHits(str, Enum):
    """How reads reported at several loci contribute to stack heights."""
    WEIGHTED = 'weighted'
    DISCARD = 'discard'
    UNIQUE = 'unique'


@dataclass(frozen=True)
class StackConfig:
    """Read filters applied while counting stacks."""
    min_read_length: int = 1
    max_read_length: int = 1000
    multihits: MultiHits = MultiHits.WEIGHTED

    def __post_init__(self):
        object.__setattr__(self, 'multihits', MultiHits(self.multihits))
        for name in ('min_read_length', 'max_read_length'):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f'{name} must be an integer >= 1, got {value!r}')
        if self.min_read_length > self.max_read_length:
            raise ValueError(
                'maximum read length ({}) must not be lower than minimum read length ({})'.format(
                    self.max_read_length, self.min_read_length)
            )


class Stack:
    """Reads starting at one position of one strand."""
    __slots__ = ('reads', 'has_uridine')

    def __init__(self, reads=0.0, has_uridine=False):
        self.reads = reads
        self.has_uridine = has_uridine

    def __repr__(self):
        return f'Stack(reads={self.reads!r}, has_uridine={self.has_uridine!r})'


StackArrays = namedtuple('StackArrays', ['positions', 'reads', 'uridine'])


class GenomeCounts:
    """Sparse stacks for both strands, grouped by contig.

    ``counts[strand][contig][position]`` is a :class:`Stack`. Contigs are
    identified by their reference id; ``references`` maps ids to names.
    """

    def __init__(self, references=()):
        self.references = tuple(references)
        self._strands = ({}, {})

    def __getitem__(self, strand):
        return self._strands[strand]

    def add(self, strand, contig, position, weight, has_uridine):
        _contig = self._strands[strand].setdefault(contig, {})
        stack = _contig.get(position)
        if stack is None:
            stack = _contig[position] = Stack()
        stack.reads += weight
        if has_uridine:
            stack.has_uridine = True
        return stack

    def merge(self, other):
        """Add the stacks of *other* into this object.

        Reads are summed and uridine flags OR-ed, so the order in which
        partial counts are merged does not matter.
        """
        if self.references and other.references and self.references != other.references:
            raise ValueError('cannot merge counts built against different references')
        if not self.references:
            self.references = other.references
        for strand in Strand:
            for contig, positions in other[strand].items():
                for position, stack in positions.items():
                    self.add(strand, contig, position, stack.reads, stack.has_uridine)
        return self

    def contigs(self, strand):
        return sorted(self._strands[strand])

    def num_stacks(self, strand=None):
        strands = Strand if strand is None else [strand]
        return sum(len(p) for s in strands for p in self._strands[s].values())

    def stack_arrays(self, strand, contig):
        """Return the stacks of one contig as position-sorted numpy arrays."""
        positions = self._strands[strand].get(contig, {})
        n = len(positions)
        _pos = np.fromiter(positions.keys(), dtype=np.int64, count=n)
        _reads = np.fromiter((s.reads for s in positions.values()), dtype=np.float64, count=n)
        _uridine = np.fromiter((s.has_uridine for s in positions.values()), dtype=bool, count=n)
        order = np.argsort(_pos, kind='stable')
        return StackArrays(_pos[order], _reads[order], _uridine[order])

    def all_reads(self):
        """Heights of every stack on both strands as a flat array."""
        return np.fromiter(
            (s.reads for strand in Strand for p in self._strands[strand].values() for s in p.values()),
            dtype=np.float64,
            count=self.num_stacks(),
        )


def stack_weight(aln, multihits):
    """Contribution of *aln* to its stack under the *multihits* policy."""
    if multihits == MultiHits.UNIQUE:
        return 1.0
    nhits = aln.get_tag(MULTIHIT_TAG) if aln.has_tag(MULTIHIT_TAG) else 1
    if multihits == MultiHits.DISCARD:
        return 1.0 if nhits == 1 else 0.0
    # 1/NH is undefined
    if nhits < 1:
        raise AlignmentDecodeError(
            'record {} has invalid {} tag: {!r}'.format(getattr(aln, 'query_name', '?'), MULTIHIT_TAG, nhits))
    return 1.0 / nhits


def _clipped_bases(cigar):
    """Soft-clipped bases at the start of *cigar*, hard clips stepped over."""
    i = 0
    while i < len(cigar) and cigar[i][0] == CHARD_CLIP:
        i += 1
    if i < len(cigar) and cigar[i][0] == CSOFT_CLIP:
        return cigar[i][1]
    return 0


def five_prime_end(aln):
    """Locate the 5' end of a mapped read.

    Returns:
        ``(strand, position, has_uridine)``. Minus-strand reads are stored
        reverse-complemented, so their 5' uridine shows up as an adenine at
        the end of the sequence.
    """
    seq = aln.query_sequence
    cigar = aln.cigartuples
    if not seq or not cigar:
        raise AlignmentDecodeError(
            'record {} has no sequence or CIGAR'.format(getattr(aln, 'query_name', '?')))

    if aln.is_reverse:
        alnlen = sum(n for op, n in cigar if op in REFERENCE_CONSUMING)
        clipped = _clipped_bases(cigar[::-1])
        if clipped >= len(seq):
            raise AlignmentDecodeError('record {} is entirely clipped'.format(aln.query_name))
        base = seq[len(seq) - clipped - 1]
        return Strand.MINUS, aln.reference_start + alnlen, base in 'Aa'

    clipped = _clipped_bases(cigar)
    if clipped >= len(seq):
        raise AlignmentDecodeError('record {} is entirely clipped'.format(aln.query_name))
    base = seq[clipped]
    return Strand.PLUS, aln.reference_start, base in 'Tt'


def count_stacks(alignments, config, counts=None):
    """Accumulate reads into stacks.

    Args:
        alignments: Iterable of pysam ``AlignedSegment`` (or look-alike) records.
        config: :class:`StackConfig`.
        counts: Existing :class:`GenomeCounts` to add to. A new one is
            created when omitted.

    Returns:
        ``(counts, stats)`` where stats is a Counter of read dispositions.
    """
    if counts is None:
        counts = GenomeCounts()
    stats = Counter()
    _minlen, _maxlen = config.min_read_length, config.max_read_length
    _multihits = config.multihits

    for aln in alignments:
        stats['total_reads'] += 1
        if aln.is_unmapped or aln.reference_start < 0:
            stats['unmapped'] += 1
            continue
        seq = aln.query_sequence
        if seq is None:
            raise AlignmentDecodeError(
                'record {} has no sequence'.format(getattr(aln, 'query_name', '?')))
        if not _minlen <= len(seq) <= _maxlen:
            stats['wrong_length'] += 1
            continue

        weight = stack_weight(aln, _multihits)
        if weight <= 0:
            stats['discarded_multihits'] += 1
            continue

        strand, position, has_uridine = five_prime_end(aln)
        counts.add(strand, aln.reference_id, position, weight, has_uridine)
        stats['counted_plus' if strand == Strand.PLUS else 'counted_minus'] += 1

        if stats['total_reads'] % 1000000 == 0:
            lg.debug('...processed {:.1f}M reads'.format(stats['total_reads'] / 1e6))

    return counts, stats
