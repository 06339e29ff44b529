# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

""" PingPong resume

"""
import os
import logging as lg
from time import time

from . import REPORTING_OPTS, SubcommandOptions, configure_logging
from .console import Stopwatch
from .scan import write_reports
from ..utils.helpers import format_minutes as fmtmins
from ..core.model import PingPong


class ResumeOptions(SubcommandOptions):
    OPTS = """
    - Input Options:
        - checkpoint:
            positional: True
            help: Path to checkpoint file written by "pingpong scan".
    """ + REPORTING_OPTS


def run(args):
    """Collapse and report a histogram saved by a previous scan.

    Args:
        args: Parsed argparse namespace.
    """
    opts = ResumeOptions(args)
    console = configure_logging(opts)
    lg.info('\n{}\n'.format(opts))
    total_time = time()
    sw = Stopwatch()

    console.banner(opts.version)
    console.section('Input')
    console.item('Checkpoint', os.path.basename(opts.checkpoint))
    console.blank()

    sw.start('Load checkpoint')
    pp = PingPong.load(opts.checkpoint)
    _elapsed = sw.stop('{:,} reads, {:,.1f} stack pairs'.format(
        pp.run_info.get('total_reads', 0), pp.raw_histogram.total()))
    pp.print_summary(lg.INFO)
    console.status('Loading checkpoint... done ({:.1f}s)'.format(_elapsed))
    console.offset_profile(pp.raw_histogram)

    os.makedirs(opts.outdir, exist_ok=True)
    write_reports(pp, opts, console, sw)

    console.blank()
    console.stage_table(sw)
    console.blank()
    lg.info('pingpong resume complete (%s)' % fmtmins(time() - total_time))
