# -*- coding: utf-8 -*-

# This file is part of PingPong.
# Licensed under MIT License.


def format_minutes(seconds):
    mins = seconds // 60
    secs = seconds - (mins * 60)
    return '%d minutes and %d secs' % (mins, secs)


def str2int(v):
    """Convert string to int or float if possible, else return unchanged."""
    if not isinstance(v, str):
        return v
    try:
        return int(v)
    except ValueError:
        pass
    try:
        return float(v)
    except ValueError:
        return v
