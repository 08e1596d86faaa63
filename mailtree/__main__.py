import sys
import logging

from . import thread
from .adapt import MailboxReader
from .errors import UnreadablePath

logger = logging.getLogger(__name__)


def get_argparser():
    import argparse

    parser = argparse.ArgumentParser(
        prog='mailtree',
        description='Print the reply threads of a mailbox as a tree')

    parser.add_argument('path',
        help='maildir directory or mbox file')

    return parser


def run(path, print=print, sort_siblings=False):
    '''Thread the mailbox at `path` and print it, returns the skipped count'''
    reader = MailboxReader(path)
    table = thread(reader)
    table.render(print, sort_siblings=sort_siblings)

    skipped = reader.skipped + table.skipped
    if skipped:
        logger.warning('skipped %d entries', skipped)
    return skipped


def main(argv=None):
    parser = get_argparser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING,
        format='%(levelname)s %(asctime)-15s [%(funcName)s] - %(message)s'
    )

    if hasattr(sys.stdout, 'reconfigure'):
        sys.stdout.reconfigure(encoding='utf-8')

    try:
        run(args.path)
    except UnreadablePath as e:
        print('mailtree: %s' % e, file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
