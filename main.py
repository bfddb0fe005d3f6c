#!/usr/bin/env python3
from logging.config import dictConfig
from typing import Union
import argparse
import json
import logging
import os

from lms_synchronizer import (CourseExporter, CredentialResolver,
                              ExportSchedule, ExportStatus, JsonRemoteIdStore,
                              JsonTokenStore, LMSType, LocalCourse,
                              build_adapter, exceptions)
from lms_synchronizer.constants import DATA_DIR
from lms_synchronizer.crypto import encrypt_token


def setup_logging(config_file: str = None, log_dir: str = None,
                  log_level: Union[str, int] = None) -> dict:
    if config_file is None:
        config_file = os.path.join(os.getcwd(), 'logging_config.json')

    if log_level is None:
        log_level = os.environ.get('LOGLEVEL', logging.INFO)

    with open(config_file, 'r') as f:
        config = json.load(f)

    for obj_type in 'loggers', 'handlers':
        obj: dict
        for obj in config[obj_type].values():
            if obj['level'] in ('NOTSET', logging.NOTSET):
                # Use environment variable if level is not set
                obj['level'] = log_level
            if (obj_type == 'handlers'
                    and log_dir is not None
                    and 'filename' in obj.keys()):
                os.makedirs(log_dir, exist_ok=True)
                obj['filename'] = os.path.join(log_dir, obj['filename'])

    return config


def get_stores():
    token_path = os.environ.get('LMS_TOKEN_STORE', DATA_DIR / 'tokens.json')
    id_path = os.environ.get('LMS_ID_STORE', DATA_DIR / 'remote_ids.json')
    return JsonTokenStore(token_path), JsonRemoteIdStore(id_path)


def export(args, logger: logging.Logger) -> int:
    with open(args.course, 'r') as f:
        course = LocalCourse.from_dict(json.load(f))

    schedule_path = os.environ.get('SCHEDULE_PATH', 'export_schedule.json')
    try:
        schedule = ExportSchedule.from_json(schedule_path)
    except FileNotFoundError:
        schedule = ExportSchedule.default()
    if args.lms is not None:
        schedule = ExportSchedule(**{f'export_{args.lms}': True})

    token_store, id_store = get_stores()
    exporter = CourseExporter(course, args.user,
                              CredentialResolver(token_store), id_store)
    outcomes = exporter.run_schedule(schedule)
    exporter.save()

    for lms_type, outcome in outcomes.items():
        logger.info(f'{lms_type}: {outcome.status.value}'
                    + (f' ({outcome.error})' if outcome.error else ''))
    return 0 if all(o.status is not ExportStatus.FAILED
                    for o in outcomes.values()) else 1


def status(args, logger: logging.Logger) -> int:
    token_store, id_store = get_stores()
    resolver = CredentialResolver(token_store)
    for lms_type in LMSType:
        credentials = resolver.resolve(args.user, lms_type)
        if credentials is None:
            logger.info(f'{lms_type}: not connected')
            continue
        result = build_adapter(credentials).test_connection()
        if result.ok:
            logger.info(f'{lms_type}: connected to {credentials.base_url}')
        else:
            logger.info(f'{lms_type}: connection failed ({result.error})')
    return 0


def store_token(args, logger: logging.Logger) -> int:
    token_store, _ = get_stores()
    token_store.set(args.user, LMSType.parse(args.lms),
                    encrypt_token(args.token))
    logger.info(f'Stored {args.lms} token for user "{args.user}".')
    return 0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Export locally authored courses to Canvas and Moodle.'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)
    lms_choices = [t.value for t in LMSType]

    export_parser = subparsers.add_parser('export',
                                          help='export a course')
    export_parser.add_argument('course', help='path to a course JSON file')
    export_parser.add_argument('--user', required=True)
    export_parser.add_argument('--lms', choices=lms_choices,
                               help='only export to this LMS')
    export_parser.set_defaults(func=export)

    status_parser = subparsers.add_parser(
        'status', help='test the connection to every connected LMS'
    )
    status_parser.add_argument('--user', required=True)
    status_parser.set_defaults(func=status)

    token_parser = subparsers.add_parser(
        'store-token', help='encrypt and store an LMS access token'
    )
    token_parser.add_argument('--user', required=True)
    token_parser.add_argument('--lms', choices=lms_choices, required=True)
    token_parser.add_argument('token')
    token_parser.set_defaults(func=store_token)

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging_config = setup_logging(log_dir=os.environ.get('LOGDIR'))
    dictConfig(logging_config)

    logger = logging.getLogger(__name__)
    try:
        return args.func(args, logger)
    except exceptions.LMSError:
        logger.exception('Could not finish export.')
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
