"""Import/export formats for the activity log."""
from .errors import ImportFormatError
from .csv_format import activities_to_csv, parse_csv
from .ical_format import activities_to_ics, parse_ics

__all__ = ['ImportFormatError', 'activities_to_csv', 'parse_csv', 'activities_to_ics', 'parse_ics']
