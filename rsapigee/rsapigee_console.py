"""Front-end command line for :mod:`rsapigee.pkcli`.

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

import sys

from pykern import pkcli


def main():
    return pkcli.main("rsapigee")


if __name__ == "__main__":
    sys.exit(main())
