# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Report generation for PingPong.

Functions accept individual data pieces rather than full PingPong objects,
so they can be called after resuming from a checkpoint.
"""

import pandas as pd

from .histogram import DIMENSIONS, LocalHeight, Uridine

_DIMENSION_LABELS = {
    'plus_uridine': [u.name for u in Uridine],
    'minus_uridine': [u.name for u in Uridine],
    'local_height': [h.name for h in LocalHeight],
}


def marginals_frame(hist):
    """Per-offset sums of the histogram along each class dimension."""
    frames = []
    for dimension in DIMENSIONS:
        _m = hist.marginal(dimension)
        labels = _DIMENSION_LABELS.get(dimension, list(range(_m.shape[1])))
        _df = pd.DataFrame(_m, index=hist.offsets, columns=labels)
        _df.index.name = 'offset'
        _df = _df.reset_index().melt(id_vars='offset', var_name='category', value_name='count')
        _df.insert(0, 'dimension', dimension)
        frames.append(_df)
    return pd.concat(frames, ignore_index=True)


def output_report(hist, run_info, stats_filename, histogram_filename, marginals_filename):
    """Write TSV reports.

    Args:
        hist: Collapsed :class:`~pingpong.core.histogram.EvidenceHistogram`.
        run_info: OrderedDict of run statistics.
        stats_filename: Path for run statistics TSV.
        histogram_filename: Path for the non-zero histogram cells.
        marginals_filename: Path for per-dimension marginal sums.
    """
    _stats = pd.DataFrame(list(run_info.items()), columns=['statistic', 'value'])
    _stats.to_csv(stats_filename, sep='\t', index=False)

    _cells = hist.to_frame()
    _cells['is_signal'] = _cells['offset'] == hist.signal_distance
    _cells.to_csv(histogram_filename, sep='\t', index=False, float_format='%.6g')

    marginals_frame(hist).to_csv(marginals_filename, sep='\t', index=False, float_format='%.6g')
