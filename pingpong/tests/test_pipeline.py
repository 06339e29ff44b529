# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Integration tests for the PingPong pipeline on small SAM files.

Tests cover:
- Reading records and @SQ header agreement across several input files
- Sequential and parallel counting give identical stacks
- Full scan and resume through the command line entry points
"""
import argparse
import os

import numpy as np
import pandas as pd
import pysam
import pytest
from numpy.testing import assert_array_almost_equal

from pingpong.alignment import HeaderMismatchError
from pingpong.alignment.sources import check_headers, iter_alignments, open_alignment_file, read_references
from pingpong.cli import resume as cli_resume
from pingpong.cli import scan as cli_scan
from pingpong.core.model import PingPong
from pingpong.core.stacks import Strand
from pingpong.tests import HEADER, make_read


def write_sam(path, reads, header=None):
    """Write (seq, start, reverse, nh) tuples to a SAM file."""
    with pysam.AlignmentFile(str(path), 'w', header=header or HEADER) as out:
        for i, (seq, start, reverse, nh) in enumerate(reads):
            out.write(make_read(out.header, seq, start, reverse=reverse, nh=nh, name=f'r{i}'))
    return str(path)


# 25-nt piRNA-like reads: plus stacks at 100 and 300, minus 5' ends at 110 and 306
READS_A = [
    ('TACGTACGTACGTACGTACGTACGT', 100, False, None),
    ('TACGTACGTACGTACGTACGTACGT', 100, False, 2),
    ('CCGTACGTACGTACGTACGTACGTA', 85, True, None),
    ('GACGTACGTACGTACGTACGTACGT', 300, False, None),
    ('CCGTACGTACGTACGTACGTACGTC', 281, True, None),
]
READS_B = [
    ('TACGTACGTACGTACGTACGTACGT', 100, False, None),
    ('CCGTACGTACGTACGTACGTACGTA', 85, True, 3),
    ('TTTTT', 500, False, None),
]


class MockOpts:
    def __init__(self, samfiles, outdir, **kwargs):
        self.samfiles = samfiles
        self.outdir = outdir
        self.exp_tag = 'test'
        self.version = 'test'
        self.min_read_length = kwargs.get('min_read_length', 18)
        self.max_read_length = kwargs.get('max_read_length', 30)
        self.multihits = kwargs.get('multihits', 'weighted')
        self.ncpu = kwargs.get('ncpu', 1)
        self.chunk_size = kwargs.get('chunk_size', 500000)

    def outfile_path(self, suffix):
        return os.path.join(self.outdir, '%s-%s' % (self.exp_tag, suffix))


@pytest.fixture
def samfiles(tmp_path):
    return [
        write_sam(tmp_path / 'a.sam', READS_A),
        write_sam(tmp_path / 'b.sam', READS_B),
    ]


# -------------------------------------------------------------------------
# Alignment sources
# -------------------------------------------------------------------------

class TestAlignmentSources:
    def test_read_references(self, samfiles):
        assert read_references(samfiles[0]) == ('chr1', 'chr2')

    def test_identical_headers(self, samfiles):
        assert check_headers(samfiles) == ('chr1', 'chr2')

    def test_iter_alignments_in_file_order(self, samfiles):
        with open_alignment_file(samfiles[0]) as sf:
            records = list(iter_alignments(sf))
        assert [r.query_name for r in records] == ['r0', 'r1', 'r2', 'r3', 'r4']
        assert [r.reference_start for r in records] == [100, 100, 85, 300, 281]
        assert records[1].get_tag('NH') == 2
        assert records[2].is_reverse

    def test_reordered_contigs_rejected(self, tmp_path, samfiles):
        swapped = dict(HEADER, SQ=list(reversed(HEADER['SQ'])))
        other = write_sam(tmp_path / 'c.sam', READS_B, header=swapped)
        with pytest.raises(HeaderMismatchError, match='c.sam'):
            check_headers(samfiles + [other])

    def test_extra_contig_rejected(self, tmp_path, samfiles):
        extra = dict(HEADER, SQ=HEADER['SQ'] + [{'SN': 'chr3', 'LN': 500}])
        other = write_sam(tmp_path / 'c.sam', READS_B, header=extra)
        with pytest.raises(HeaderMismatchError):
            check_headers([samfiles[0], other])

    def test_mismatch_fails_before_counting(self, tmp_path, samfiles):
        extra = dict(HEADER, SQ=HEADER['SQ'] + [{'SN': 'chr3', 'LN': 500}])
        other = write_sam(tmp_path / 'c.sam', READS_B, header=extra)
        with pytest.raises(HeaderMismatchError):
            PingPong(MockOpts(samfiles + [other], str(tmp_path)))


# -------------------------------------------------------------------------
# Pipeline
# -------------------------------------------------------------------------

class TestPipeline:
    def test_config_rejected_before_reading(self, tmp_path):
        opts = MockOpts([str(tmp_path / 'missing.sam')], str(tmp_path),
                        min_read_length=30, max_read_length=20)
        with pytest.raises(ValueError, match='must not be lower'):
            PingPong(opts)

    def test_stdin_must_be_alone(self, tmp_path, samfiles):
        with pytest.raises(ValueError):
            PingPong(MockOpts(samfiles + ['-'], str(tmp_path)))

    def test_counts(self, tmp_path, samfiles):
        pp = PingPong(MockOpts(samfiles, str(tmp_path)))
        counts = pp.load_alignment()
        # 1 + 1/2 from a.sam, 1 from b.sam
        assert counts[Strand.PLUS][0][100].reads == pytest.approx(2.5)
        assert counts[Strand.PLUS][0][100].has_uridine is True
        assert counts[Strand.PLUS][0][300].has_uridine is False
        assert counts[Strand.MINUS][0][110].reads == pytest.approx(1 + 1 / 3)
        assert counts[Strand.MINUS][0][306].has_uridine is False
        assert pp.run_info['total_reads'] == 8
        assert pp.run_info['wrong_length'] == 1
        assert pp.run_info['stacks_plus'] == 2
        assert pp.run_info['stacks_minus'] == 2

    def test_parallel_matches_sequential(self, tmp_path, samfiles):
        seq = PingPong(MockOpts(samfiles, str(tmp_path))).load_alignment()
        par = PingPong(MockOpts(samfiles, str(tmp_path), ncpu=2)).load_alignment()
        for strand in Strand:
            a = seq.stack_arrays(strand, 0)
            b = par.stack_arrays(strand, 0)
            assert_array_almost_equal(a.positions, b.positions)
            assert_array_almost_equal(a.reads, b.reads)

    def test_run(self, tmp_path, samfiles):
        pp = PingPong(MockOpts(samfiles, str(tmp_path)))
        hist = pp.run()
        # plus 100 / minus 110 at the signal distance, plus 300 / minus 306 as background
        assert pp.raw_histogram[10].sum() == pytest.approx(1.0)
        assert pp.raw_histogram[6].sum() == pytest.approx(1.0)
        # heights 1 (three stacks) and 3 (plus 100)
        assert pp.run_info['height_score_map_size'] == 2
        assert hist.n_bins == pp.run_info['collapsed_bins']
        assert_array_almost_equal(hist.counts.sum(axis=1), pp.raw_histogram.counts.sum(axis=1))

    def test_discard_policy(self, tmp_path, samfiles):
        pp = PingPong(MockOpts(samfiles, str(tmp_path), multihits='discard'))
        counts = pp.load_alignment()
        assert counts[Strand.PLUS][0][100].reads == 2.0
        assert counts[Strand.MINUS][0][110].reads == 1.0
        assert pp.run_info['discarded_multihits'] == 2

    def test_checkpoint_roundtrip(self, tmp_path, samfiles):
        pp = PingPong(MockOpts(samfiles, str(tmp_path)))
        pp.run()
        path = str(tmp_path / 'ckpt.npz')
        pp.save(path)
        loaded = PingPong.load(path)
        np.testing.assert_array_equal(loaded.raw_histogram.counts, pp.raw_histogram.counts)
        assert loaded.run_info['total_reads'] == 8
        assert loaded.references == ('chr1', 'chr2')


# -------------------------------------------------------------------------
# Command line
# -------------------------------------------------------------------------

def _scan_args(samfiles, outdir, **kwargs):
    d = dict(
        samfiles=samfiles, min_read_length=18, max_read_length=30, multihits='weighted',
        quiet=True, verbose=False, debug=False, logfile=None, outdir=outdir,
        exp_tag='test', ncpu=1, chunk_size=500000, version='test',
    )
    d.update(kwargs)
    return argparse.Namespace(**d)


class TestCommandLine:
    def test_add_arguments(self):
        parser = argparse.ArgumentParser()
        cli_scan.ScanOptions.add_arguments(parser)
        args = parser.parse_args(['a.bam', 'b.bam', '--multihits', 'unique', '--max_read_length', '29'])
        assert args.samfiles == ['a.bam', 'b.bam']
        assert args.multihits == 'unique'
        assert args.max_read_length == 29
        assert args.min_read_length == 1

    def test_invalid_multihits(self):
        parser = argparse.ArgumentParser()
        cli_scan.ScanOptions.add_arguments(parser)
        with pytest.raises(SystemExit):
            parser.parse_args(['a.bam', '--multihits', 'everything'])

    def test_scan_writes_reports(self, tmp_path, samfiles):
        outdir = str(tmp_path / 'out')
        cli_scan.run(_scan_args(samfiles, outdir))
        for suffix in ('checkpoint.npz', 'stats.tsv', 'histogram.tsv', 'marginals.tsv'):
            assert os.path.exists(os.path.join(outdir, 'test-' + suffix))

        cells = pd.read_csv(os.path.join(outdir, 'test-histogram.tsv'), sep='\t')
        signal = cells[cells['is_signal']]
        assert signal['count'].sum() == pytest.approx(1.0)
        assert set(signal['plus_uridine']) == {'IS_URIDINE'}
        assert set(signal['minus_uridine']) == {'IS_URIDINE'}

        stats = pd.read_csv(os.path.join(outdir, 'test-stats.tsv'), sep='\t', index_col=0)
        assert int(stats.loc['total_reads', 'value']) == 8

    def test_resume(self, tmp_path, samfiles):
        outdir = str(tmp_path / 'out')
        cli_scan.run(_scan_args(samfiles, outdir))
        first = pd.read_csv(os.path.join(outdir, 'test-histogram.tsv'), sep='\t')

        args = argparse.Namespace(
            checkpoint=os.path.join(outdir, 'test-checkpoint.npz'),
            quiet=True, verbose=False, debug=False, logfile=None,
            outdir=str(tmp_path / 'resumed'), exp_tag='test', version='test',
        )
        cli_resume.run(args)
        second = pd.read_csv(os.path.join(str(tmp_path / 'resumed'), 'test-histogram.tsv'), sep='\t')
        pd.testing.assert_frame_equal(first, second)
