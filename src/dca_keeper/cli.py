#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# GitHub: https://github.com/btschwertfeger
#

import sys
from logging import DEBUG, INFO, WARNING, basicConfig, getLogger
from typing import Any, Callable

from click import BOOL, FLOAT, INT, STRING, Context, echo, pass_context
from cloup import Choice, HelpFormatter, HelpTheme, Style, group, option

from dca_keeper.models.configuration import SUPPORTED_LEDGERS

FORMATTER_SETTINGS = HelpFormatter.settings(
    theme=HelpTheme(
        invoked_command=Style(fg="bright_yellow"),
        heading=Style(fg="bright_white", bold=True),
        constraint=Style(fg="magenta"),
        col1=Style(fg="bright_yellow"),
    ),
)


def print_version(ctx: Context, param: Any, value: Any) -> None:  # noqa: ANN401, ARG001
    """Prints the version of the package"""
    if not value or ctx.resilient_parsing:
        return
    from importlib.metadata import (  # noqa: PLC0415 # pylint: disable=import-outside-toplevel
        version,
    )

    echo(version("dca-keeper"))
    ctx.exit()


def ensure_larger_than_zero(
    ctx: Context,
    param: Any,  # noqa: ANN401
    value: Any,  # noqa: ANN401
) -> Any:  # noqa: ANN401
    """Ensure the value is larger than 0"""
    if value is not None and value <= 0:
        ctx.fail(f"Value for option '{param.name}' must be larger than 0")
    return value


def scheduling_options(func: Callable) -> Callable:
    """Options shared by the commands that execute orders."""
    for decorator in reversed(
        (
            option(
                "--max-retries",
                type=INT,
                default=3,
                show_default=True,
                help="Number of retries for transient ledger failures.",
            ),
            option(
                "--base-delay",
                type=FLOAT,
                default=1.0,
                show_default=True,
                help="Delay in seconds before the first retry, doubled on every retry.",
            ),
            option(
                "--batch/--per-order",
                "batch_execution",
                default=True,
                show_default=True,
                help="Submit all due orders at once or one by one.",
            ),
        ),
    ):
        func = decorator(func)
    return func


@group(
    context_settings={
        "auto_envvar_prefix": "DCA_KEEPER",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
    no_args_is_help=True,
)
@option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
)
@option(
    "--ledger",
    type=Choice(choices=SUPPORTED_LEDGERS, case_sensitive=True),
    default="JSON-RPC",
    show_default=True,
    help="The ledger backend to use.",
)
@option(
    "--rpc-url",
    type=STRING,
    help="URL of the JSON-RPC relay in front of the ledger.",
)
@option(
    "--contract-address",
    type=STRING,
    help="Address of the recurring order contract.",
)
@option(
    "--owner",
    type=STRING,
    help="Address of the principal that owns the orders.",
)
@option(
    "--native-asset",
    type=STRING,
    default="native",
    show_default=True,
    help="Identifier of the ledger's native asset.",
)
@option(
    "--request-timeout",
    type=FLOAT,
    default=10.0,
    callback=ensure_larger_than_zero,
    help="Timeout in seconds for ledger requests.",
)
@option(
    "-v",
    "--verbose",
    count=True,
    help="Increase the verbosity of output. Use -vv for even more verbosity.",
)
@option(
    "--dry-run",
    required=False,
    is_flag=True,
    default=False,
    help="Enable dry-run mode which does not submit executions.",
)
@pass_context
def cli(ctx: Context, **kwargs: dict) -> None:
    """
    Command-line interface entry point
    """
    ctx.ensure_object(dict)
    ctx.obj |= kwargs

    verbosity = kwargs.get("verbose", 0)

    basicConfig(
        format="%(asctime)s %(levelname)8s | %(message)s",
        datefmt="%Y/%m/%d %H:%M:%S",
        level=INFO if verbosity == 0 else DEBUG,
    )

    if verbosity > 1:  # type: ignore[operator]
        getLogger("requests").setLevel(DEBUG)
        getLogger("urllib3").setLevel(DEBUG)
    else:
        getLogger("requests").setLevel(WARNING)
        getLogger("urllib3").setLevel(WARNING)


def _keeper_config(ctx: Context, **overrides: Any) -> Any:  # noqa: ANN401
    from dca_keeper.models.configuration import (  # noqa: PLC0415 # pylint: disable=import-outside-toplevel
        KeeperConfigDTO,
    )

    settings = {
        key: ctx.obj[key]
        for key in (
            "ledger",
            "rpc_url",
            "contract_address",
            "owner",
            "native_asset",
            "request_timeout",
            "dry_run",
        )
    }
    return KeeperConfigDTO(**settings | overrides)


def _ledger(ctx: Context) -> Any:  # noqa: ANN401
    from dca_keeper.adapters.ledger import (  # noqa: PLC0415 # pylint: disable=import-outside-toplevel
        create_ledger,
    )

    return create_ledger(_keeper_config(ctx))


@cli.command(
    context_settings={
        "auto_envvar_prefix": "DCA_KEEPER_EXECUTE",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
)
@scheduling_options
@pass_context
def execute(ctx: Context, **kwargs: dict) -> None:
    """Execute all orders that are due once and exit."""
    import asyncio  # noqa: PLC0415 # pylint: disable=import-outside-toplevel

    from dca_keeper.core.scheduler import (  # noqa: PLC0415 # pylint: disable=import-outside-toplevel
        Scheduler,
    )

    scheduler = Scheduler(config=_keeper_config(ctx, **kwargs))
    sys.exit(asyncio.run(scheduler.run_once()))


@cli.command(
    context_settings={
        "auto_envvar_prefix": "DCA_KEEPER_RUN",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
)
@option(
    "--name",
    type=STRING,
    default="dca-keeper",
    show_default=True,
    help="The name of the keeper used in notifications.",
)
@option(
    "--check-interval",
    type=FLOAT,
    default=60.0,
    show_default=True,
    callback=ensure_larger_than_zero,
    help="Seconds between two execution cycles.",
)
@option(
    "--metrics-report-interval",
    type=FLOAT,
    default=300.0,
    show_default=True,
    callback=ensure_larger_than_zero,
    help="Seconds between two metrics reports.",
)
@scheduling_options
@option(
    "--telegram-token",
    required=False,
    type=STRING,
    help="The telegram token to use.",
)
@option(
    "--telegram-chat-id",
    required=False,
    type=STRING,
    help="The telegram chat ID to use.",
)
@pass_context
def run(ctx: Context, **kwargs: dict) -> None:
    """Execute due orders periodically until interrupted."""
    # pylint: disable=import-outside-toplevel
    import asyncio  # noqa: PLC0415

    from dca_keeper.core.scheduler import Scheduler  # noqa: PLC0415
    from dca_keeper.models.configuration import (  # noqa: PLC0415
        NotificationConfigDTO,
        TelegramConfigDTO,
    )

    notification_config = NotificationConfigDTO(
        telegram=TelegramConfigDTO(
            token=kwargs.pop("telegram_token"),
            chat_id=kwargs.pop("telegram_chat_id"),
        ),
    )
    scheduler = Scheduler(
        config=_keeper_config(ctx, **kwargs),
        notification_config=notification_config,
    )
    sys.exit(asyncio.run(scheduler.run()))


@cli.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    formatter_settings=FORMATTER_SETTINGS,
)
@option(
    "--amount",
    required=True,
    type=STRING,
    help="The total budget, e.g. '100.5'.",
)
@option(
    "--decimals",
    type=INT,
    default=18,
    show_default=True,
    help="Number of decimals of the source asset.",
)
@option(
    "--intervals",
    required=True,
    type=INT,
    callback=ensure_larger_than_zero,
    help="Number of intervals the budget is spent over.",
)
@option("--symbol", type=STRING, default="", help="Symbol of the source asset.")
def split(amount: str, decimals: int, intervals: int, symbol: str) -> None:
    """Show how a budget is split into equal installments."""
    # pylint: disable=import-outside-toplevel
    from dca_keeper.core import amounts  # noqa: PLC0415
    from dca_keeper.exceptions import InvalidInputError  # noqa: PLC0415

    try:
        result = amounts.split(amounts.to_base_units(amount, decimals), intervals)
    except InvalidInputError as exc:
        echo(f"Invalid input: {exc}", err=True)
        sys.exit(1)

    unit = f" {symbol}" if symbol else ""
    echo(
        f"Amount per interval: {amounts.format_amount_smart(result.amount_per_interval, decimals)}{unit}",
    )
    echo(f"Intervals: {result.total_intervals}")
    echo(
        f"Total used: {amounts.format_amount_smart(result.actual_total_used, decimals)}{unit}",
    )
    if notice := amounts.remainder_notice(result, decimals, symbol):
        echo(f"Note: {notice}")


@cli.command(
    context_settings={
        "auto_envvar_prefix": "DCA_KEEPER_ORDERS",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
)
@option(
    "--tab",
    type=Choice(choices=("all", "open", "history")),
    default="all",
    show_default=True,
    help="Which orders to show.",
)
@option(
    "--decimals",
    type=INT,
    default=18,
    show_default=True,
    help="Number of decimals used to display amounts.",
)
@pass_context
def orders(ctx: Context, tab: str, decimals: int) -> None:
    """List the orders of the owner."""
    # pylint: disable=import-outside-toplevel
    from datetime import datetime  # noqa: PLC0415

    from prettytable import PrettyTable  # noqa: PLC0415

    from dca_keeper.core import readiness  # noqa: PLC0415
    from dca_keeper.core.amounts import format_amount_smart  # noqa: PLC0415
    from dca_keeper.models.ledger import OrderStatus  # noqa: PLC0415
    from dca_keeper.services.order_service import (  # noqa: PLC0415
        OrderService,
        filter_orders,
    )

    if not ctx.obj["owner"]:
        ctx.fail("Option '--owner' is required to list orders.")

    config = _keeper_config(ctx)
    service = OrderService(
        ledger=_ledger(ctx),
        owner=config.owner,
        native_asset=config.native_asset,
    )

    table = PrettyTable(
        ["ID", "Pair", "Amount", "Interval", "Progress", "Status", "Next execution"],
    )
    for order in filter_orders(service.list_orders(), tab):
        status = readiness.order_status(order)
        next_execution = "-"
        if status == OrderStatus.ACTIVE:
            next_execution = datetime.fromtimestamp(
                readiness.display_execution_time(
                    order.next_execution_time,
                    config.lead_buffer,
                ),
            ).strftime("%Y/%m/%d %H:%M:%S")
            if readiness.is_ready(order):
                next_execution += " (ready)"
        table.add_row(
            [
                order.id,
                f"{order.source_asset} / {order.target_asset}",
                format_amount_smart(order.amount_per_interval, decimals),
                readiness.format_interval(order.interval),
                f"{order.intervals_completed} / {order.total_intervals}",
                status.value.capitalize(),
                next_execution,
            ],
        )
    echo(table)


@cli.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    formatter_settings=FORMATTER_SETTINGS,
)
@option("--source-asset", required=True, type=STRING, help="The asset to spend.")
@option("--target-asset", required=True, type=STRING, help="The asset to buy.")
@option("--amount", required=True, type=STRING, help="The total budget.")
@option(
    "--decimals",
    type=INT,
    default=18,
    show_default=True,
    help="Number of decimals of the source asset.",
)
@option(
    "--interval",
    type=Choice(choices=("hour", "day", "week")),
    default="day",
    show_default=True,
    help="Time between two executions.",
)
@option(
    "--intervals",
    required=True,
    type=INT,
    callback=ensure_larger_than_zero,
    help="Number of executions.",
)
@option(
    "--approve",
    type=BOOL,
    is_flag=True,
    default=False,
    help="Approve the source asset first if required.",
)
@pass_context
def create(ctx: Context, **kwargs: dict) -> None:
    """Create a new recurring order."""
    # pylint: disable=import-outside-toplevel
    import asyncio  # noqa: PLC0415

    from dca_keeper.core.amounts import to_base_units  # noqa: PLC0415
    from dca_keeper.core.readiness import interval_seconds  # noqa: PLC0415
    from dca_keeper.exceptions import KeeperError  # noqa: PLC0415
    from dca_keeper.services.order_service import OrderService  # noqa: PLC0415

    if not ctx.obj["owner"]:
        ctx.fail("Option '--owner' is required to create orders.")

    config = _keeper_config(ctx)
    service = OrderService(
        ledger=_ledger(ctx),
        owner=config.owner,
        native_asset=config.native_asset,
    )
    try:
        budget = to_base_units(kwargs["amount"], kwargs["decimals"])
        if kwargs["approve"] and kwargs["source_asset"] != config.native_asset:
            allowance = service.allowance
            allowance.update_inputs(kwargs["source_asset"], budget, kwargs["intervals"])
            if allowance.needs_approval:
                echo(f"Approving {kwargs['source_asset']}...")
                allowance.approve()
                asyncio.run(allowance.wait_for_confirmation(max_polls=30))

        order_id = service.create_order(
            source_asset=kwargs["source_asset"],
            target_asset=kwargs["target_asset"],
            budget=budget,
            interval=interval_seconds(kwargs["interval"]),
            total_intervals=kwargs["intervals"],
        )
    except KeeperError as exc:
        echo(f"Could not create order: {exc}", err=True)
        sys.exit(1)
    echo(f"Created order #{order_id}")


@cli.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    formatter_settings=FORMATTER_SETTINGS,
)
@option("--order-id", required=True, type=INT, help="The order to cancel.")
@option(
    "-f",
    "--force",
    required=False,
    type=BOOL,
    default=False,
    is_flag=True,
    show_default=True,
)
@pass_context
def cancel(ctx: Context, order_id: int, force: bool) -> None:
    """Cancel a recurring order."""
    if not force:
        echo("Not canceling -f is required!")
        sys.exit(1)
    if not ctx.obj["owner"]:
        ctx.fail("Option '--owner' is required to cancel orders.")

    # pylint: disable=import-outside-toplevel
    from dca_keeper.exceptions import KeeperError  # noqa: PLC0415
    from dca_keeper.services.order_service import OrderService  # noqa: PLC0415

    service = OrderService(ledger=_ledger(ctx), owner=ctx.obj["owner"])
    try:
        tx_hash = service.cancel_order(order_id)
    except KeeperError as exc:
        echo(f"Could not cancel order: {exc}", err=True)
        sys.exit(1)
    echo(f"Cancelled order #{order_id} ({tx_hash})")
