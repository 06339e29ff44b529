# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

import pysam

HEADER = {
    'HD': {'VN': '1.6', 'SO': 'unsorted'},
    'SQ': [{'SN': 'chr1', 'LN': 100000}, {'SN': 'chr2', 'LN': 100000}],
}


def make_header(header_dict=None):
    return pysam.AlignmentHeader.from_dict(header_dict or HEADER)


def make_read(header, seq, start, reverse=False, cigar=None, nh=None,
              contig=0, unmapped=False, name='read'):
    """Build an in-memory single-end alignment."""
    aln = pysam.AlignedSegment(header)
    aln.query_name = name
    aln.query_sequence = seq
    aln.flag = (4 if unmapped else 0) | (16 if reverse else 0)
    if unmapped:
        aln.reference_id = -1
        aln.reference_start = -1
    else:
        aln.reference_id = contig
        aln.reference_start = start
        aln.mapping_quality = 255
        aln.cigarstring = cigar or '{}M'.format(len(seq))
    if nh is not None:
        aln.set_tag('NH', nh)
    return aln
