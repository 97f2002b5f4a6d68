#!/usr/bin/env python3
# ==============================================================================
# Copyright (c) 2025 Aaron Johnson, Drexel University
# Licensed under the MIT License - see LICENSE file for details
# ==============================================================================
"""Exceptions raised by the county beds pipeline."""


class CountyBedsError(Exception):
    """Base class for errors that should abort a run."""


class DataLoadError(CountyBedsError):
    """An input file is missing, unreadable, or lacks expected columns."""

    def __init__(self, path, message, missing_columns=None):
        self.path = path
        self.missing_columns = list(missing_columns or [])
        super().__init__(f"{path}: {message}")


class UnknownStateAbbreviationError(CountyBedsError, KeyError):
    """A state abbreviation has no entry in the state reference table."""

    def __init__(self, abbreviation, fips=None):
        self.abbreviation = abbreviation
        self.fips = fips
        where = f" (county FIPS {fips})" if fips is not None else ""
        super().__init__(f"Unknown state abbreviation {abbreviation!r}{where}")

    # KeyError.__str__ would wrap the message in quotes
    def __str__(self):
        return self.args[0]
