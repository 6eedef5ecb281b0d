"""Compound growth producer.

Renders a yearly-compounded balance table immediately, then streams the
same horizon compounded monthly, one year per event, so the page can
draw the second curve over the first as the updates arrive.

Query parameters:
    principal     starting balance, 0..1e12 (default 1000)
    rate          annual interest rate in percent, -100..1000 (default 5)
    years         horizon, 1..100 (default 10)
    contribution  amount added every month in the streamed series, 0..1e12 (default 0)
    interval      seconds between streamed events, 0..60 (default 1)

Both series are computed before the page renders. A combination whose
balances outgrow the decimal context is rejected as a bad parameter
instead of failing later inside the stream.
"""

import asyncio
from decimal import ROUND_HALF_UP, Decimal, DecimalException
from typing import Any

import structlog

from playground.errors import ChannelClosedError, InvalidParameterError
from playground.producers.base import Producer, spawn
from playground.producers.params import Params
from playground.realtime.channel import EventChannel

logger = structlog.get_logger()

CENT = Decimal("0.01")
MAX_YEARS = 100
MAX_INTERVAL = Decimal("60")
MAX_AMOUNT = Decimal("1e12")
MIN_RATE = Decimal("-100")
MAX_RATE = Decimal("1000")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def yearly_balances(principal: Decimal, rate: Decimal, years: int) -> list[dict[str, Any]]:
    """Balance at the end of each year, compounded once a year."""
    factor = 1 + rate / 100
    balance = principal
    series = [{"year": 0, "balance": _money(balance)}]
    for year in range(1, years + 1):
        balance *= factor
        series.append({"year": year, "balance": _money(balance)})
    return series


def monthly_step(balance: Decimal, rate: Decimal, contribution: Decimal) -> Decimal:
    """Advance a balance by twelve monthly compounding periods."""
    factor = 1 + rate / 100 / 12
    for _ in range(12):
        balance = balance * factor + contribution
    return balance


def monthly_events(
    principal: Decimal, rate: Decimal, years: int, contribution: Decimal
) -> list[dict[str, Any]]:
    """One event per year of the monthly-compounded series."""
    balance = principal
    contributed = Decimal("0")
    events = []
    for year in range(1, years + 1):
        balance = monthly_step(balance, rate, contribution)
        contributed += contribution * 12
        events.append({
            "year": year,
            "balance": _money(balance),
            "contributed": _money(contributed),
        })
    return events


def _check_range(params: Params, key: str, value: Decimal, low: Decimal, high: Decimal) -> None:
    if not low <= value <= high:
        raise InvalidParameterError(key, params.get(key, str(value)), f"must be between {low} and {high}")


class CompoundGrowthProducer(Producer):
    """Yearly table now, monthly-compounded series streamed afterwards."""

    @property
    def name(self) -> str:
        return "compound_growth"

    def produce(self, params: Params, channel: EventChannel) -> dict[str, Any]:
        principal = params.get_decimal("principal", Decimal("1000"))
        rate = params.get_decimal("rate", Decimal("5"))
        years = params.get_int("years", 10, minimum=1, maximum=MAX_YEARS)
        contribution = params.get_decimal("contribution", Decimal("0"))
        interval = params.get_decimal("interval", Decimal("1"))

        _check_range(params, "principal", principal, Decimal("0"), MAX_AMOUNT)
        _check_range(params, "rate", rate, MIN_RATE, MAX_RATE)
        _check_range(params, "contribution", contribution, Decimal("0"), MAX_AMOUNT)
        _check_range(params, "interval", interval, Decimal("0"), MAX_INTERVAL)

        try:
            series = yearly_balances(principal, rate, years)
            events = monthly_events(principal, rate, years, contribution)
        except DecimalException:
            raise InvalidParameterError("years", params.get("years", str(years)), "balance grows too large")

        spawn(self._stream(channel, events, float(interval)), name=f"{self.name}-stream")

        return {
            "params": {
                "principal": principal,
                "rate": rate,
                "years": years,
                "contribution": contribution,
            },
            "series": series,
        }

    async def _stream(self, channel: EventChannel, events: list[dict[str, Any]], interval: float) -> None:
        for event in events:
            await asyncio.sleep(interval)
            if channel.closed:
                logger.info("compound_growth.stopped", year=event["year"], reason="channel_closed")
                return
            try:
                await channel.send(event)
            except ChannelClosedError:
                logger.info("compound_growth.stopped", year=event["year"], reason="channel_closed")
                return
        logger.info("compound_growth.finished", years=len(events))
