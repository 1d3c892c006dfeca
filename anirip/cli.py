"""Command line front end: ``anirip rip``, ``anirip login`` and ``anirip clear``."""

import argparse
import logging
import sys

from . import __version__
from .config.config_manager import ConfigManager, get_config_value, set_config_manager
from .exceptions import AniripError
from .services.file_service import FileService
from .services.logging_service import log_success, setup_logging
from .services.pipeline_service import DownloadSettings, Orchestrator

logger = logging.getLogger('anirip.cli')


def build_parser():
    parser = argparse.ArgumentParser(prog='anirip', description='Crunchyroll/Daisuki show ripper')
    parser.add_argument('--version', action='version', version=f'anirip {__version__}')
    parser.add_argument('--config', help='path to a YAML configuration file')
    parser.add_argument('-v', '--verbose', action='store_true', help='show debug output')
    commands = parser.add_subparsers(dest='command', required=True)

    rip = commands.add_parser('rip', help='download every episode of one or more shows')
    rip.add_argument('urls', nargs='*', metavar='URL', help='show page URLs')
    rip.add_argument('-l', '--lang', help='desired subtitle language (default: English)')
    rip.add_argument('-q', '--quality', help='desired video quality (default: 1080p)')
    rip.add_argument('-t', '--trim', help='intros to trim off the final video: daisuki, aniplex, sunrise')
    rip.add_argument('-u', '--user', help='premium username used to access the video stream')
    rip.add_argument('-p', '--password', help='premium password used to access the video stream')
    rip.add_argument('-o', '--output', help='directory the show folders are created in')

    login = commands.add_parser('login', help='create and store cookies for a stream provider')
    login.add_argument('provider', help='crunchyroll or daisuki')
    login.add_argument('-u', '--user', help='premium username used to access the video stream')
    login.add_argument('-p', '--password', help='premium password used to access the video stream')

    commands.add_parser('clear', help='erase the temporary directory used for cookies and temp files')
    return parser


def run_rip(args):
    if not args.urls:
        logger.error("No show URLs provided.")
        return 1

    settings = DownloadSettings.from_config(
        language=args.lang, quality=args.quality, trim=args.trim, output_dir=args.output)
    orchestrator = Orchestrator(settings)
    reports = orchestrator.run(args.urls, args.user, args.password)
    if all(report.error is not None for report in reports):
        return 1
    return 0


def run_login(args):
    settings = DownloadSettings.from_config()
    try:
        Orchestrator(settings).login(args.provider, args.user, args.password)
    except AniripError as e:
        logger.error(str(e))
        return 1
    return 0


def run_clear(args):
    settings = DownloadSettings.from_config()
    try:
        FileService(settings.temp_dir, settings.output_dir).clear_temp_dir()
    except OSError as e:
        logger.error(f"There was an error erasing the temporary directory: {e}")
        return 1
    log_success(logger, f"Successfully erased the temporary directory {settings.temp_dir}")
    return 0


COMMANDS = {
    'rip': run_rip,
    'login': run_login,
    'clear': run_clear,
}


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.config:
        set_config_manager(ConfigManager(args.config))

    setup_logging(
        log_file=get_config_value('logging.file', 'anirip.log'),
        console_level=logging.DEBUG if args.verbose else logging.getLevelName(
            str(get_config_value('logging.level', 'INFO')).upper()),
    )
    logger.info(f"anirip {__version__}")
    return COMMANDS[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
