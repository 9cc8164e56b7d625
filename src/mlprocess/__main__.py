# -*- coding: utf-8 -*-
import sys

from mlprocess.cli import main

sys.exit(main())
