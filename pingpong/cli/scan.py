# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

""" PingPong scan

"""
import os
import logging as lg
from time import time

from . import REPORTING_OPTS, SubcommandOptions, configure_logging, collect_output_files
from .console import Stopwatch
from ..utils.helpers import format_minutes as fmtmins
from ..core.model import PingPong


class ScanOptions(SubcommandOptions):

    OPTS = """
    - Input Options:
        - samfiles:
            positional: True
            nargs: "*"
            help: Alignment files in SAM or BAM format. "-" (the default)
                  reads from stdin. All files must have identical @SQ header
                  lines.
        - min_read_length:
            type: int
            default: 1
            help: Ignore reads shorter than this length.
        - max_read_length:
            type: int
            default: 1000
            help: Ignore reads longer than this length.
        - multihits:
            default: weighted
            choices:
                - weighted
                - discard
                - unique
            help: >
                  How to count multi-mapping reads (NH tag > 1).
                  "weighted" - every alignment adds 1/NH to its stack;
                  "discard" - multi-mapping reads are ignored;
                  "unique" - every alignment adds 1, as if it were unique.
    - Performance Options:
        - ncpu:
            default: 1
            type: int
            help: Number of processes used to count reads. Each input file
                  is counted by one process.
        - chunk_size:
            default: 500000
            type: int
            help: Number of plus-strand stacks scanned at once. Lower values
                  use less memory.
    """ + REPORTING_OPTS

    def __init__(self, args):
        super().__init__(args)
        if self.ncpu < 1:
            raise ValueError('ncpu must be >= 1')
        if self.chunk_size < 1:
            raise ValueError('chunk_size must be >= 1')


def write_reports(pp, opts, console, sw):
    """Collapse the raw histogram and write the TSV reports."""
    sw.start('Collapse bins')
    pp.collapse()
    pp.output_report(
        opts.outfile_path('stats.tsv'),
        opts.outfile_path('histogram.tsv'),
        opts.outfile_path('marginals.tsv'),
    )
    sw.stop('{} -> {} height score bins'.format(pp.run_info['raw_bins'], pp.histogram.n_bins))
    console.blank()
    console.section('Output')
    for f in collect_output_files(opts.outdir, opts.exp_tag):
        console.detail(f)


def run(args):
    """Count stacks, build the evidence histogram and report it.

    Args:
        args: Parsed argparse namespace.
    """
    opts = ScanOptions(args)
    console = configure_logging(opts)
    lg.info('\n{}\n'.format(opts))
    total_time = time()
    sw = Stopwatch()

    console.banner(opts.version)

    # Configuration and @SQ headers are checked here, before any counting
    pp = PingPong(opts)

    console.section('Input')
    for f in pp.samfiles:
        console.item('Alignment', 'stdin' if f == '-' else os.path.basename(f))
    console.item('Read length', '{}-{}'.format(opts.min_read_length, opts.max_read_length))
    console.item('Multi-hits', opts.multihits)
    console.blank()

    os.makedirs(opts.outdir, exist_ok=True)

    sw.start('Count reads')
    pp.load_alignment()
    _counted = pp.run_info['counted_plus'] + pp.run_info['counted_minus']
    _elapsed = sw.stop('{:,} of {:,} reads'.format(_counted, pp.run_info['total_reads']))
    lg.info('Counted reads in {}'.format(fmtmins(_elapsed)))
    pp.print_summary(lg.INFO)
    console.status('Counting reads... done ({:.1f}s)'.format(_elapsed))
    console.detail('{:,} plus-strand stacks, {:,} minus-strand stacks'.format(
        pp.run_info['stacks_plus'], pp.run_info['stacks_minus']))

    sw.start('Pair stacks')
    pp.score_heights()
    pp.group()
    _pairs = pp.raw_histogram.total()
    _elapsed = sw.stop('{:,.1f} stack pairs'.format(_pairs))
    console.status('Pairing stacks... done ({:.1f}s)'.format(_elapsed))
    console.verbose('{} distinct stack heights'.format(pp.run_info['height_score_map_size']))
    console.offset_profile(pp.raw_histogram)

    pp.save(opts.outfile_path('checkpoint'))

    write_reports(pp, opts, console, sw)

    console.blank()
    console.stage_table(sw)
    console.blank()
    lg.info('pingpong scan complete (%s)' % fmtmins(time() - total_time))
