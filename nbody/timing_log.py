"""
Append-only timing log: one space-separated row of numbers per benchmark iteration.
"""

import csv
import os
from typing import Sequence

# Column order downstream analysis reads
TIMING_FIELDS = ('n', 'build_s', 'traverse_s', 'approx_s', 'direct_s', 'l2_error')


class TimingLog:
    """
    Appends rows to a whitespace-delimited text file.

    Write failures are reported and swallowed: diagnostics never abort the
    benchmark.
    """

    def __init__(self, filepath: str, fields: Sequence[str] = TIMING_FIELDS, truncate: bool = True):
        self.filepath = filepath
        self.fields = tuple(fields)
        self.rows_written = 0

        if truncate:
            try:
                directory = os.path.dirname(filepath)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                open(filepath, 'w').close()
            except OSError as exc:
                print(f"[TimingLog] WARNING: cannot create {filepath}: {exc}")

    def append(self, values: dict) -> bool:
        """Write one row in field order; returns False if the write failed."""
        row = [values[field] for field in self.fields]
        try:
            with open(self.filepath, 'a', newline='') as f:
                writer = csv.writer(f, delimiter=' ')
                writer.writerow(row)
        except OSError as exc:
            print(f"[TimingLog] WARNING: could not append to {self.filepath}: {exc}")
            return False

        self.rows_written += 1
        return True

    def read_rows(self):
        """Parse the log back into a list of float tuples."""
        with open(self.filepath, 'r', newline='') as f:
            return [tuple(float(v) for v in row) for row in csv.reader(f, delimiter=' ') if row]
