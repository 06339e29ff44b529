# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.

import argparse
import logging
import os
import sys
from collections import OrderedDict

import yaml

from .. import __version__
from .console import Console

# Types YAML option blocks may name
_SAFE_TYPES = {
    'int': int,
    "argparse.FileType('w')": argparse.FileType('w'),
}

# Shared by every subcommand; appended to each subcommand's own OPTS
REPORTING_OPTS = """
    - Reporting Options:
        - quiet:
            action: store_true
            help: Silence (most) output.
        - verbose:
            action: store_true
            help: Show per-offset pair counts and debugging progress.
        - debug:
            action: store_true
            help: Print debug messages.
        - logfile:
            type: argparse.FileType('w')
            help: Log output to this file.
        - outdir:
            default: .
            help: Output directory.
        - exp_tag:
            default: pingpong
            help: Experiment tag, prefixed to every output file.
"""


class SubcommandOptions:
    """Options of one subcommand, declared as a YAML list of option groups.

    Every group maps option names to ``add_argument`` keywords. ``positional``
    turns an option into a positional argument; ``type`` must be a key of
    ``_SAFE_TYPES``.
    """
    OPTS = REPORTING_OPTS

    def __init__(self, args):
        self.opt_names, self.opt_groups = self._parse_yaml_opts(self.OPTS)
        for k, v in vars(args).items():
            setattr(self, k, v)
        if getattr(self, 'logfile', None) is None:
            self.logfile = sys.stderr
        if not hasattr(self, 'version'):
            self.version = __version__

    @classmethod
    def add_arguments(cls, parser):
        _, opt_groups = cls._parse_yaml_opts(cls.OPTS)
        for group_name, args in opt_groups.items():
            argparse_grp = parser.add_argument_group(group_name, '')
            for arg_name, arg_d in args.items():
                _d = dict(arg_d)
                _arg_name = arg_name if _d.pop('positional', False) else f'--{arg_name}'
                if 'type' in _d:
                    if _d['type'] not in _SAFE_TYPES:
                        raise ValueError(f"Unsupported type '{_d['type']}' for option '{arg_name}'")
                    _d['type'] = _SAFE_TYPES[_d['type']]
                argparse_grp.add_argument(_arg_name, **_d)

    @staticmethod
    def _parse_yaml_opts(opts_yaml):
        _opt_names = []
        _opt_groups = OrderedDict()
        for grp in yaml.load(opts_yaml, Loader=yaml.SafeLoader):
            grp_name, args = list(grp.items())[0]
            _opt_groups[grp_name] = OrderedDict()
            for arg in args:
                arg_name, d = list(arg.items())[0]
                _opt_groups[grp_name][arg_name] = d
                _opt_names.append(arg_name)
        return _opt_names, _opt_groups

    def outfile_path(self, suffix):
        return os.path.join(self.outdir, '%s-%s' % (self.exp_tag, suffix))

    def __str__(self):
        ret = ['{:34}{}'.format('Version:', self.version)]
        for group_name, args in self.opt_groups.items():
            ret.append(group_name)
            for arg_name in args:
                v = getattr(self, arg_name, 'Not set')
                v = v.name if hasattr(v, 'name') else v
                ret.append('    {:30}{}'.format(arg_name + ':', v))
        return '\n'.join(ret)


def configure_logging(opts):
    """Set up logging on stderr (or --logfile) and return the stdout Console.

    ``--debug`` and ``--verbose`` raise both the log level and the amount of
    Console output; ``--quiet`` silences the Console but keeps warnings.
    """
    if opts.quiet:
        console_level = Console.QUIET
    elif opts.debug:
        console_level = Console.DEBUG
    elif opts.verbose:
        console_level = Console.VERBOSE
    else:
        console_level = Console.NORMAL

    logfmt = '%(asctime)s %(levelname)-8s %(message)s'
    if opts.debug:
        loglev = logging.DEBUG
        logfmt = '%(asctime)s %(levelname)-8s %(message)-60s (%(funcName)s in %(filename)s:%(lineno)d)'
    elif opts.verbose:
        loglev = logging.INFO
    else:
        loglev = logging.WARNING

    logging.basicConfig(level=loglev, format=logfmt, datefmt='%Y-%m-%d %H:%M:%S',
                        stream=opts.logfile, force=True)
    return Console(level=console_level)


def collect_output_files(outdir, exp_tag):
    """Output files of one run, relative to outdir."""
    return sorted(f for f in os.listdir(outdir) if f.startswith(exp_tag + '-'))
