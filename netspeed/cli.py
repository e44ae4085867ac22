#!/usr/bin/env python3

import io
import json
import logging
import signal
import sys
import threading
import time
from collections import OrderedDict
from pathlib import Path

import click

from netspeed import config as netspeed_config
from netspeed import glyphs
from netspeed.data.network_speed import NetworkSpeed
from netspeed.scheduler import Scheduler
from netspeed.util import conversion, log, system, wtime
from netspeed.util.errors import ConfigError, NetSpeedError
from netspeed.util.network import CounterSource, StatsParser
from netspeed.util.rate import compute_rates

context_settings = dict(help_option_names=["-h", "--help"])
logger = logging.getLogger("netspeed")


def generate_tooltip(network_speed: NetworkSpeed) -> str:
    tooltip: list[str] = []
    tooltip_od: OrderedDict[str, str] = OrderedDict()

    if network_speed.received:
        tooltip_od["Download"] = network_speed.received

    if network_speed.transmitted:
        tooltip_od["Upload"] = network_speed.transmitted

    max_key_length = 0
    for key in tooltip_od.keys():
        max_key_length = len(key) if len(key) > max_key_length else max_key_length

    for key, value in tooltip_od.items():
        tooltip.append(f"{key:{max_key_length}} : {value}")

    if len(tooltip) > 0:
        tooltip.append("")
        tooltip.append(f"Last updated {network_speed.updated}")

    return "\n".join(tooltip)


def render_output(network_speed: NetworkSpeed, icon: bool) -> tuple[str, str, str]:
    if network_speed.success:
        text = network_speed.text
        if icon:
            text = f"{glyphs.md_network}{glyphs.icon_spacer}{text}"
        output_class = "success"
        tooltip = generate_tooltip(network_speed=network_speed)
    else:
        text = f"{glyphs.md_alert}{glyphs.icon_spacer}{network_speed.error}"
        output_class = "error"
        tooltip = f"Network speed {network_speed.error}"

    return text, output_class, tooltip


def emit(network_speed: NetworkSpeed, as_json: bool, icon: bool):
    text, output_class, tooltip = render_output(network_speed=network_speed, icon=icon)
    if as_json:
        print(json.dumps({"text": text, "class": output_class, "tooltip": tooltip}))
    else:
        print(text)


def sample_once(source: CounterSource, parser: StatsParser, interval: int) -> NetworkSpeed:
    """
    Take two samples `interval` seconds apart and return the reading.
    """
    try:
        first = parser.parse(source.read())
        time.sleep(interval)
        second = parser.parse(source.read())
    except NetSpeedError as e:
        logger.error(f"[sample_once] - {e}")
        return NetworkSpeed(success=False, error=str(e))

    rates = compute_rates(previous=first, current=second, interval=interval)
    return NetworkSpeed(
        success=True,
        received=conversion.format_speed(rates.rx),
        transmitted=conversion.format_speed(rates.tx),
        updated=wtime.get_human_timestamp(),
    )


def load_configuration(
    config_file: Path | None,
    interval: int | None,
    path: str | None,
    ignore: tuple[str, ...],
    icon: bool,
    debug: bool,
) -> netspeed_config.Configuration:
    configuration = netspeed_config.load_yaml(config_file)

    if interval is not None:
        configuration.interval = interval
    if path:
        configuration.path = path
    if ignore:
        configuration.ignored_prefixes = list(ignore)
    configuration.icon = configuration.icon or icon
    configuration.debug = configuration.debug or debug

    return netspeed_config.validate(configuration)


def run(configuration: netspeed_config.Configuration, as_json: bool):
    stop_event = threading.Event()
    scheduler = Scheduler(
        source=CounterSource(path=configuration.path),
        parser=StatsParser(ignored_prefixes=configuration.ignored_prefixes),
    )

    def on_tick(download: str, upload: str):
        network_speed = NetworkSpeed(
            success=True,
            received=download,
            transmitted=upload,
            updated=wtime.get_human_timestamp(),
        )
        emit(network_speed=network_speed, as_json=as_json, icon=configuration.icon)

    def refresh_handler(_signum: int, _frame: object | None):
        logger.info("[refresh_handler] - received SIGHUP - re-fetching data")
        scheduler.refresh()

    def stop_handler(signum: int, _frame: object | None):
        logger.info(f"[stop_handler] - received {signal.Signals(signum).name} - exiting")
        stop_event.set()

    _ = signal.signal(signal.SIGHUP, refresh_handler)
    _ = signal.signal(signal.SIGINT, stop_handler)
    _ = signal.signal(signal.SIGTERM, stop_handler)

    scheduler.start(interval=configuration.interval, on_tick=on_tick)
    try:
        while not stop_event.wait(timeout=1):
            pass
    finally:
        scheduler.stop()


@click.command(
    name="run",
    help="Show download/upload speed from /proc/net/dev",
    context_settings=context_settings,
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a YAML config file [default: ~/.config/netspeed/config.yaml]",
)
@click.option(
    "-i", "--interval", type=int, default=None, help="The update interval (in seconds)"
)
@click.option("-p", "--path", default=None, help="The counter file to read")
@click.option(
    "-x",
    "--ignore",
    multiple=True,
    help="Ignore interfaces starting with this prefix (replaces the defaults)",
)
@click.option(
    "-j", "--json", "as_json", default=False, is_flag=True, help="Print waybar JSON"
)
@click.option(
    "--icon", default=False, is_flag=True, help="Prefix the output with a network icon"
)
@click.option(
    "-t", "--test", default=False, is_flag=True, help="Print the output and exit"
)
@click.option("-d", "--debug", default=False, is_flag=True, help="Enable debug logging")
def main(
    config_file: Path | None,
    interval: int | None,
    path: str | None,
    ignore: tuple[str, ...],
    as_json: bool,
    icon: bool,
    test: bool,
    debug: bool,
):
    try:
        configuration = load_configuration(
            config_file=config_file,
            interval=interval,
            path=path,
            ignore=ignore,
            icon=icon,
            debug=debug,
        )
        logfile = system.get_cache_directory() / "netspeed.log"
    except ConfigError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    _ = log.configure(debug=configuration.debug, name="netspeed", logfile=logfile)

    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(line_buffering=True)

    if test:
        network_speed = sample_once(
            source=CounterSource(path=configuration.path),
            parser=StatsParser(ignored_prefixes=configuration.ignored_prefixes),
            interval=configuration.interval,
        )
        emit(network_speed=network_speed, as_json=as_json, icon=configuration.icon)
        if not network_speed.success:
            sys.exit(1)
        return

    logger.info("[main] - entering")
    run(configuration=configuration, as_json=as_json)


if __name__ == "__main__":
    main()
