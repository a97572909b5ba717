#!/usr/bin/env python3
# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Container entrypoint script.

Delegates to :func:`consul_aws.entrypoint.cli`.  Equivalent to the
installed ``docker-entrypoint`` console script.
"""

import sys
from pathlib import Path


# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from consul_aws.entrypoint import cli


if __name__ == "__main__":
    cli()
