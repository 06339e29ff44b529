# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Progress output for ``pingpong scan`` and ``pingpong resume``.

Logging goes to stderr (or --logfile). The Console prints a short account
of each pipeline stage to stdout: what went in, how many stacks and pairs
came out, and how the pairs spread over the offsets.
"""

import sys
from time import perf_counter


class Stopwatch:
    """Elapsed time and a one-line result for each pipeline stage."""

    def __init__(self):
        self._stages = []        # [(name, elapsed, result)]
        self._first = None
        self._active = None

    def start(self, name):
        if self._active is not None:
            self.stop()
        now = perf_counter()
        self._active = (name, now)
        if self._first is None:
            self._first = now

    def stop(self, result=''):
        """End the running stage and return its elapsed seconds.

        Args:
            result: Short description of what the stage produced, shown
                next to its time in the stage table.
        """
        if self._active is None:
            return 0.0
        name, began = self._active
        elapsed = perf_counter() - began
        self._stages.append((name, elapsed, result))
        self._active = None
        return elapsed

    @property
    def total(self):
        return perf_counter() - self._first if self._first is not None else 0.0

    @property
    def stages(self):
        return list(self._stages)


class Console:
    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3

    def __init__(self, level=NORMAL, stream=None):
        self.level = level
        self.stream = stream or sys.stdout

    def banner(self, version):
        if self.level < self.NORMAL:
            return
        self._write('')
        self._write('PingPong v{} -- ping-pong signature scan'.format(version))
        self._write('')

    def section(self, title):
        if self.level < self.NORMAL:
            return
        self._write('  {}'.format(title))

    def item(self, label, value):
        if self.level < self.NORMAL:
            return
        self._write('    {:<14}{}'.format(label + ':', value))

    def status(self, message):
        if self.level < self.NORMAL:
            return
        self._write('  {}'.format(message))

    def detail(self, message):
        if self.level < self.NORMAL:
            return
        self._write('    {}'.format(message))

    def verbose(self, message):
        if self.level < self.VERBOSE:
            return
        self._write('    {}'.format(message))

    def blank(self):
        if self.level < self.NORMAL:
            return
        self._write('')

    def offset_profile(self, hist):
        """Summarise how many stack pairs fell at each offset.

        Normal output compares the ping-pong offset with the mean of the
        background offsets. Verbose output adds one bar per offset, the
        ping-pong offset marked with ``*``.
        """
        if self.level < self.NORMAL:
            return
        per_offset = hist.counts.sum(axis=(1, 2, 3, 4))
        signal = per_offset[hist.signal_index]
        background = per_offset[hist.background_indices].mean()
        if background > 0:
            self.detail('{:,.1f} pairs at {} nt, {:.2f}x the mean of other offsets'.format(
                signal, hist.signal_distance, signal / background))
        else:
            self.detail('{:,.1f} pairs at {} nt, none at other offsets'.format(
                signal, hist.signal_distance))

        if self.level < self.VERBOSE:
            return
        peak = per_offset.max()
        for offset, n in zip(hist.offsets, per_offset):
            bar = '#' * int(round(30 * n / peak)) if peak > 0 else ''
            mark = '*' if offset == hist.signal_distance else ' '
            self._write('    {:>3}{} {:>12,.1f}  {}'.format(offset, mark, n, bar))

    def stage_table(self, stopwatch):
        """Time and result of every stage, then the total."""
        if self.level < self.NORMAL:
            return
        stages = stopwatch.stages
        if not stages:
            return
        self.section('Stages')
        for name, elapsed, result in stages:
            self._write('    {:<18}{:>7.1f}s  {}'.format(name, elapsed, result))
        self._write('    {:<18}{:>7.1f}s'.format('Total', stopwatch.total))

    def _write(self, text):
        print(text, file=self.stream)
