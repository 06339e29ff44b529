# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

"""Reading SAM/BAM files with pysam."""

import logging as lg

import pysam

from . import HeaderMismatchError


def read_references(path):
    """Return the ordered reference names from the header of *path*."""
    with pysam.AlignmentFile(path, check_sq=False) as sf:
        return tuple(sf.references)


def check_headers(paths):
    """Verify that all input files share identical @SQ lines.

    The first file is taken as the reference. Names are compared in order,
    so two files with the same contigs in a different order also fail.

    Args:
        paths: Sequence of alignment file paths.

    Returns:
        Tuple of reference names shared by all files.

    Raises:
        HeaderMismatchError: if any file disagrees with the first.
    """
    references = None
    for path in paths:
        _refs = read_references(path)
        if references is None:
            references = _refs
            lg.debug('%s: %d references', path, len(_refs))
        elif _refs != references:
            raise HeaderMismatchError(
                "@SQ header lines of '{}' differ from those of previous input files".format(path)
            )
    return references if references is not None else ()


def open_alignment_file(path, threads=1):
    """Open *path* (SAM or BAM, "-" for stdin) for sequential reading."""
    return pysam.AlignmentFile(path, check_sq=False, threads=threads)


def iter_alignments(samfile):
    """Yield the records of an open alignment file in file order.

    Works on unsorted and unindexed input, including stdin. pysam I/O errors
    propagate to the caller.
    """
    nrec = 0
    for aln in samfile.fetch(until_eof=True):
        nrec += 1
        yield aln
    lg.debug('Read %d alignment records', nrec)
