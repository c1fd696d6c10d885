#!/usr/bin/env python3
# Copyright (C) 2026 vdimon authors - License: GNU General Public License v2
# This file is part of vdimon. It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
