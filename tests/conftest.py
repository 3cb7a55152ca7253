# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import logging

import pulumi
import pytest

from fakes import DemoMocks


@pytest.fixture
def mocks():
    m = DemoMocks()
    pulumi.runtime.set_mocks(m, project="demo", stack="demo", preview=False)
    return m


@pytest.fixture(autouse=True)
def _drop_log_handlers():
    yield
    # handlers bound to a runner's captured streams must not outlive the test
    logger = logging.getLogger("meshdemo")
    logger.handlers.clear()
    logger.propagate = True
