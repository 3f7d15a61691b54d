# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                        ᚺᚢᚷᛁᚾᚾ ᚨᚾᛞ ᛗᚢᚾᛁᚾᚾ • HUGINN & MUNINN
#                        Odin's Ravens - Thought & Memory
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   'run' flies out to every account and brings the paths home;
#   'show' reads back what was remembered.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from cape.commands.run import CapeRun, run_cape
from cape.commands.show import locate_result_files, merge_results, run_show

__all__ = ['CapeRun', 'run_cape', 'locate_result_files', 'merge_results', 'run_show']
