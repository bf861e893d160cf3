"""Strictly sequential `asyncio` chains

Deployment state for one asset in one environment is not safe to mutate
concurrently on the management server so multi-step operations never
use `asyncio.gather`. Each step is awaited before the next one starts.

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

from pykern.pkcollections import PKDict
from pykern.pkdebug import pkdc, pkdlog, pkdexc
import rsapigee.util
import time


async def fold(items, op, accumulator):
    """Reduce ``items`` with coroutine ``op`` one item at a time

    Args:
        items (iterable): values passed to ``op`` in order
        op (coroutine function): ``op(accumulator, item)`` returns next accumulator
        accumulator (object): initial value
    Returns:
        object: final accumulator
    """
    for i in items:
        accumulator = await op(accumulator, i)
    return accumulator


async def outcomes(items, op, deadline=None):
    """Call ``op(item)`` for each item in order, isolating failures

    An exception raised by ``op`` is recorded in that item's outcome and
    the chain continues. `asyncio.CancelledError` is not an `Exception`
    so cancellation still stops the chain.

    Args:
        items (iterable): values passed to ``op``
        op (coroutine function): called with a single item
        deadline (float): `time.monotonic` value after which no more steps are issued [None]
    Returns:
        list: PKDict(item, result, error) in the order of ``items``
    """

    async def _step(rv, item):
        o = PKDict(item=item, result=None, error=None)
        if deadline is not None and time.monotonic() >= deadline:
            o.error = rsapigee.util.DeadlineExceeded(
                "deadline passed before item={}", item
            )
        else:
            try:
                o.result = await op(item)
            except Exception as e:
                pkdlog("item={} error={}", item, e)
                pkdc("stack={}", pkdexc())
                o.error = e
        rv.append(o)
        return rv

    return await fold(items, _step, [])
