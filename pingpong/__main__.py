#! /usr/bin/env python
# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

""" Main functionality of PingPong

"""
import sys
import argparse

from pingpong import __version__
from .cli import scan as cli_scan
from .cli import resume as cli_resume


USAGE = ''' %(prog)s <command> [<args>]

The most commonly used commands are:
   scan           Scan alignments for ping-pong signatures
   resume         Collapse and report a histogram from a checkpoint file

'''


def main():
    if len(sys.argv) == 1:
        empty_parser = argparse.ArgumentParser(
            description='Find ping-pong signatures in small RNA sequencing data',
            usage=USAGE,
        )
        empty_parser.print_help(sys.stderr)
        sys.exit(1)

    parser = argparse.ArgumentParser(
        description='Find ping-pong signatures in small RNA sequencing data',
    )
    parser.add_argument('--version',
        action='version',
        version=__version__,
        default=__version__,
    )

    subparser = parser.add_subparsers(help='Sub-command help', dest='subcommand')

    ''' Parser for scan '''
    scan_parser = subparser.add_parser('scan',
        description='''Scan piRNA-Seq alignments for stacks whose 5' ends
        overlap reads on the opposite strand by 10 nt''',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    cli_scan.ScanOptions.add_arguments(scan_parser)
    scan_parser.set_defaults(func=cli_scan.run)

    ''' Parser for resume '''
    resume_parser = subparser.add_parser('resume',
        description='''Collapse and report a histogram from a checkpoint file''',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    cli_resume.ResumeOptions.add_arguments(resume_parser)
    resume_parser.set_defaults(func=cli_resume.run)

    args = parser.parse_args()
    if not hasattr(args, 'func'):
        parser.print_help(sys.stderr)
        sys.exit(1)
    args.func(args)


if __name__ == '__main__':
    main()
