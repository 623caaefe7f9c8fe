"""simcheck - call-contract review for pull requests.

Indexes function definitions per commit and checks the calls a diff adds
against them: argument count, required parameters, unknown keyword
arguments and return-value use.
"""

__version__ = "0.1.0"
