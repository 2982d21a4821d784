"""Walkthrough of the Deferred primitives.

Each scenario shows one mechanism: the executor, the delayed call, the
success and failure handlers, chaining, and fan-out/fan-in with
``Deferred.all()``. Run it with ``python -m eventual.demo``.
"""

import logging

from .common import config, log
from .deferred import Deferred
from .scheduler import LoopScheduler
from .timing import delay

_logger = logging.getLogger(__name__)


def run_demo(scheduler, greeting_delay_ms=200, succeed=True):
    """Play all scenarios on a scheduler, then returns their outcomes.

    Args:
        scheduler (LoopScheduler): scheduler running the scenarios.
        greeting_delay_ms (int, optional): delay of the delayed greeting.
        succeed (bool, optional): condition used by the executors. If False,
            the executor and handler scenarios take their failure branch.
    Returns:
        dict: outcome of each scenario, by name.
    """
    outcomes = {}

    def record(name):
        def _record(value):
            outcomes[name] = value
            return value
        return _record

    # The executor decides the outcome, synchronously.
    def executor(resolve, reject):
        if succeed:
            resolve('Resolved!')
        else:
            reject('Rejected!')

    Deferred(executor, scheduler).then(record('executor'),
                                       record('executor'))

    # Delayed call: the synchronous code always runs first.
    order = outcomes['greeting'] = []

    def delayed_hello():
        _logger.info('Hi! This is an asynchronous greeting!')
        order.append('greeting')

    scheduler.schedule(delayed_hello, greeting_delay_ms)
    order.append('synchronous code')

    # Success handler with then(), failure handler with catch().
    def coin(resolve, reject):
        if succeed:
            resolve('Yay!')
        else:
            reject('Ohhh noooo!')

    Deferred(coin, scheduler) \
        .then(record('then_catch')) \
        .catch(record('then_catch'))

    # Chaining: each handler returns the next Deferred.
    def first_step():
        return delay(scheduler, 10, 2)

    def second_step(value):
        return delay(scheduler, 10, value * 10)

    first_step() \
        .then(second_step) \
        .then(record('chain'))

    # Fan-out/fan-in, keeping the input order.
    Deferred.all([delay(scheduler, 30, 'one'),
                  delay(scheduler, 10, 'two'),
                  Deferred.resolve('three', scheduler)]) \
        .then(record('all'))

    # Fail-fast: the rejection doesn't wait for the slow input.
    Deferred.all([delay(scheduler, 10, 'fast'),
                  Deferred.reject('boom', scheduler),
                  delay(scheduler, 1000, 'slow')]) \
        .then(record('all_fail_fast'), record('all_fail_fast'))

    scheduler.run()
    return outcomes


def main():
    with log.Context():
        config.load()
        log.set_debug_mode(config.get('debug_mode'))
        log.set_logs_level(config.get('log_levels'))

        outcomes = run_demo(LoopScheduler(), config.get('demo_delay_ms'))
        for name in sorted(outcomes):
            _logger.info('%-14s %r', name, outcomes[name])


if __name__ == '__main__':
    main()
