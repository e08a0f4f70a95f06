"""
Entry point for duofm.
"""
import argparse
import curses
import locale
import logging
import os

from .core.config import load_config
from .core.dispatcher import CommandDispatcher
from .core.system import TextEditor
from .filemanager.core import SortMode
from .filemanager.pane import PanePair
from .ui.event_loop import run_app_loop
from .ui.screen import CursesScreen

LOGGER = logging.getLogger(__name__)

# Ensure UTF-8
try:
    locale.setlocale(locale.LC_ALL, '')
except locale.Error:
    pass


def configure_logging():
    """Enable debug logging when DUOFM_DEBUG is set (to DUOFM_LOG if given)."""
    if not os.environ.get('DUOFM_DEBUG'):
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format='[%(levelname)s] %(name)s: %(message)s',
        filename=os.environ.get('DUOFM_LOG') or None,
    )


def build_parser():
    parser = argparse.ArgumentParser(prog='duofm', description='Dual-pane keyboard file manager.')
    parser.add_argument('left', nargs='?', default=None, help='start directory of the left pane')
    parser.add_argument('right', nargs='?', default=None, help='start directory of the right pane')
    parser.add_argument('--config', default=None, help='path to config.toml')
    return parser


def build_dispatcher(stdscr, args):
    config = load_config(args.config)
    screen = CursesScreen(stdscr)
    start = args.left or os.getcwd()
    panes = PanePair.open(
        start,
        args.right or start,
        sort_mode=SortMode(config.sort),
        show_hidden=config.show_hidden,
        show_details=config.show_details,
    )
    dispatcher = CommandDispatcher(
        panes,
        screen,
        config=config,
        editor=TextEditor(config.editor, suspend=screen.suspend),
    )
    return dispatcher, screen


def main(stdscr, args):
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    dispatcher, screen = build_dispatcher(stdscr, args)
    run_app_loop(dispatcher, screen)


def run(argv=None):
    """Run duofm and return process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging()
    try:
        curses.wrapper(main, args)
        return 0
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        LOGGER.exception('duofm crashed')
        print(f'\nError: {e}')
        return 1


def main_cli():
    """Console script entrypoint."""
    return run()


if __name__ == '__main__':
    raise SystemExit(main_cli())
