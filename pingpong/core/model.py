# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""PingPong pipeline: stack counting, scoring, grouping and collapsing.

The stages run strictly one after the other; each hands its result to
the next and never touches it again.
"""

import functools
import logging as lg
from collections import Counter, OrderedDict
from multiprocessing import Pool

import numpy as np

from ..alignment.sources import check_headers, iter_alignments, open_alignment_file
from ..utils.helpers import str2int
from .collapse import collapse_bins
from .grouping import DEFAULT_CHUNK_SIZE, group_stacks
from .heights import map_heights_to_scores
from .histogram import EvidenceHistogram
from .reporter import output_report as _output_report_func
from .stacks import GenomeCounts, StackConfig, Strand, count_stacks


def count_file(path, config, threads=1):
    """Count the stacks of a single alignment file.

    Returns:
        ``(counts, stats)`` with a :class:`GenomeCounts` owned by the caller.
    """
    with open_alignment_file(path, threads=threads) as sf:
        counts = GenomeCounts(sf.references)
        return count_stacks(iter_alignments(sf), config, counts)


class PingPong:
    """Ping-pong signature scan over one or more alignment files."""

    def __init__(self, opts):
        self.opts = opts
        self.run_info = OrderedDict()
        self.counts = None           # GenomeCounts
        self.heights = None          # HeightScoreMap
        self.raw_histogram = None    # EvidenceHistogram, HEIGHT_SCORE_BINS bins
        self.histogram = None        # EvidenceHistogram after collapsing

        self.run_info['version'] = getattr(opts, 'version', '')

        # Raises ValueError before any input is opened
        self.config = StackConfig(
            min_read_length=opts.min_read_length,
            max_read_length=opts.max_read_length,
            multihits=opts.multihits,
        )

        self.samfiles = list(opts.samfiles) or ['-']
        if '-' in self.samfiles and len(self.samfiles) > 1:
            raise ValueError('standard input ("-") must be the only input when reading several files')

        if len(self.samfiles) > 1:
            self.references = check_headers(self.samfiles)
        else:
            self.references = None

    def load_alignment(self):
        if getattr(self.opts, 'ncpu', 1) > 1 and len(self.samfiles) > 1:
            counts, stats = self._load_parallel()
        else:
            counts, stats = self._load_sequential()

        self.counts = counts
        for k in ('total_reads', 'unmapped', 'wrong_length', 'discarded_multihits',
                  'counted_plus', 'counted_minus'):
            self.run_info[k] = stats[k]
        self.run_info['stacks_plus'] = counts.num_stacks(Strand.PLUS)
        self.run_info['stacks_minus'] = counts.num_stacks(Strand.MINUS)
        return counts

    def _load_sequential(self):
        counts = None
        stats = Counter()
        for path in self.samfiles:
            lg.info('Counting reads in {}'.format(path))
            _counts, _stats = count_file(path, self.config)
            counts = _counts if counts is None else counts.merge(_counts)
            stats.update(_stats)
        return counts, stats

    def _load_parallel(self):
        lg.info('Counting reads in {} files with {} processes'.format(
            len(self.samfiles), self.opts.ncpu))
        counts = None
        stats = Counter()
        with Pool(processes=self.opts.ncpu) as pool:
            _loadfunc = functools.partial(count_file, config=self.config)
            result = pool.map_async(_loadfunc, self.samfiles)
            # merged in input order
            for _counts, _stats in result.get():
                counts = _counts if counts is None else counts.merge(_counts)
                stats.update(_stats)
        return counts, stats

    def score_heights(self):
        self.heights = map_heights_to_scores(self.counts)
        self.run_info['height_score_map_size'] = len(self.heights)
        return self.heights

    def group(self):
        _chunk = getattr(self.opts, 'chunk_size', None) or DEFAULT_CHUNK_SIZE
        self.raw_histogram = group_stacks(self.counts, self.heights, chunk_size=_chunk)
        _sig = self.raw_histogram.counts[self.raw_histogram.signal_index]
        self.run_info['signal_pairs'] = float(_sig.sum())
        self.run_info['raw_bins'] = self.raw_histogram.n_bins
        return self.raw_histogram

    def collapse(self):
        self.histogram = collapse_bins(self.raw_histogram)
        self.run_info['collapsed_bins'] = self.histogram.n_bins
        return self.histogram

    def run(self):
        """Run all stages and return the collapsed histogram."""
        self.load_alignment()
        self.score_heights()
        self.group()
        return self.collapse()

    def save(self, filename):
        """Checkpoint the raw histogram and run statistics."""
        self.raw_histogram.save(
            filename,
            _run_info=np.array([(k, str(v)) for k, v in self.run_info.items()]),
            _references=np.array(self.references or self.counts.references, dtype=str),
        )

    @classmethod
    def load(cls, filename):
        obj = cls.__new__(cls)
        obj.opts = None
        obj.counts = None
        obj.heights = None
        obj.histogram = None
        obj.raw_histogram = EvidenceHistogram.load(filename)
        with np.load(filename) as loader:
            obj.run_info = OrderedDict()
            for k, v in loader['_run_info']:
                obj.run_info[str(k)] = str2int(str(v))
            obj.references = tuple(str(r) for r in loader['_references'])
        return obj

    def output_report(self, stats_filename, histogram_filename, marginals_filename):
        return _output_report_func(
            self.histogram,
            self.run_info,
            stats_filename,
            histogram_filename,
            marginals_filename,
        )

    def print_summary(self, loglev=lg.WARNING):
        _d = Counter()
        for k, v in self.run_info.items():
            if isinstance(v, (int, float)):
                _d[k] = v

        lg.log(loglev, 'Stack Summary:')
        lg.log(loglev, '    {} total reads.'.format(_d['total_reads']))
        lg.log(loglev, '        {} unmapped.'.format(_d['unmapped']))
        lg.log(loglev, '        {} outside the read length range.'.format(_d['wrong_length']))
        lg.log(loglev, '        {} discarded multi-mapping reads.'.format(_d['discarded_multihits']))
        lg.log(loglev, '--')
        lg.log(loglev, '    {} reads counted; of these'.format(_d['counted_plus'] + _d['counted_minus']))
        lg.log(loglev, '        {} on the plus strand in {} stacks.'.format(
            _d['counted_plus'], _d['stacks_plus']))
        lg.log(loglev, '        {} on the minus strand in {} stacks.'.format(
            _d['counted_minus'], _d['stacks_minus']))
