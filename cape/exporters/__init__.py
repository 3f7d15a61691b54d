# ᚢᛏᚠᛟᚱᛊᛖᛚ • Exporters - Result File Formats
"""
CAPE Exporters - Hand results to viewers and other tools.

Formats:
- JSON: inbound privesc paths per analyzed account
"""

from cape.exporters.results import (
    CapeResults,
    ResultPublisher,
    load_results,
    result_file_path,
)

__all__ = ['CapeResults', 'ResultPublisher', 'load_results', 'result_file_path']
