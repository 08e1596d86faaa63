#!/usr/bin/env python3
import collections
import functools
import logging
from datetime import timezone

from .errors import MissingIdentifier

logger = logging.getLogger(__name__)


message = functools.partial(
    collections.namedtuple(
        'Message', ('id', 'subject', 'date', 'references', 'in_reply_to')),
    subject=None,
    date=None,
    references=(),
    in_reply_to=()
)


CROSS = '├─'
CORNER = '└─'
VERTICAL = '│ '
SPACE = '  '


def _tokens(value):
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return value


def ancestor_chain(message):
    '''Ids from the oldest known ancestor down to the message itself

    References come first, then In-Reply-To, each id only on its first
    occurrence. The message's own id is always last.
    '''
    if not message.id:
        raise MissingIdentifier('message has no id: %r' % (message,))

    chain = []
    seen = set()
    for ref in list(_tokens(message.references)) + list(_tokens(message.in_reply_to)):
        if ref not in seen:
            seen.add(ref)
            chain.append(ref)
    chain.append(message.id)
    return chain


def sort_key(container):
    # absent values order before any present one
    date, subject = container.date, container.subject
    if date is not None and date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return (date is not None, date, subject is not None, subject)


class Container:
    def __init__(self, id, message=None):
        self.id = id
        self.message = message
        self.parent = None
        # ordered set of child ids
        self.children = {}

    @property
    def is_root(self):
        return self.parent is None

    @property
    def is_placeholder(self):
        return self.message is None

    @property
    def date(self):
        if self.message is None:
            return None
        return self.message.date

    @property
    def subject(self):
        if self.message is None:
            return None
        return self.message.subject

    def __repr__(self):
        return '<Container (of %r)>' % self.id


class Table(dict):
    '''Every message id seen so far, in the order it was first seen

    Nodes refer to each other by id only, the table is what keeps them.
    '''

    def __init__(self):
        super().__init__()
        self.skipped = 0

    @property
    def root_set(self):
        for v in self.values():
            if v.is_root:
                yield v

    def get_or_create(self, message_id):
        try:
            return self[message_id]
        except KeyError:
            container = self[message_id] = Container(message_id)
            return container

    def lookup(self, message_id):
        return self.get(message_id)

    def remove(self, message_id):
        return self.pop(message_id)

    def sort(self, key=sort_key):
        ordered = sorted(self.values(), key=key)
        self.clear()
        for c in ordered:
            self[c.id] = c

    def link(self, child, parent_id):
        parent = self.get_or_create(parent_id)
        child.parent = parent.id
        parent.children[child.id] = None

    def would_loop(self, child_id, parent_id):
        '''True if `child_id` is `parent_id` or one of its ancestors'''
        current = parent_id
        while current is not None:
            if current == child_id:
                return True
            container = self.get(current)
            if container is None:
                break
            current = container.parent
        return False

    def add_message(self, message):
        ids = ancestor_chain(message)

        container = self.get_or_create(message.id)
        container.message = message

        self.get_or_create(ids[0])
        for i in range(1, len(ids)):
            if self.would_loop(ids[i], ids[i - 1]):
                logger.debug('would loop %r => %r', ids[i - 1], ids[i])
                continue
            rcontainer = self.get_or_create(ids[i])
            if rcontainer.parent is None:
                self.link(rcontainer, ids[i - 1])

    def prune(self):
        '''Drop every placeholder, handing its children to its parent

        Children of a placeholder without a parent become roots. Links are
        rewired on both ends so the order placeholders are removed in does
        not matter.
        '''
        placeholders = [c for c in self.values() if c.is_placeholder]
        for container in placeholders:
            self.remove(container.id)
            parent = None
            if container.parent is not None:
                parent = self[container.parent]
                del parent.children[container.id]

            for child_id in container.children:
                child = self[child_id]
                if parent is None:
                    child.parent = None
                else:
                    child.parent = parent.id
                    parent.children[child_id] = None

        logger.debug('pruned %d placeholders', len(placeholders))
        return len(placeholders)

    def dump(self, root, print=print, sort_siblings=False):
        pending = [(root, None, '')]
        while pending:
            container, glyph, indent = pending.pop()
            if glyph is None:
                line, child_indent = '', ''
            else:
                line = indent + glyph
                child_indent = indent + (SPACE if glyph == CORNER else VERTICAL)

            if container.subject is not None:
                print(line + container.subject)

            children = [self[c] for c in container.children]
            if sort_siblings:
                children.sort(key=sort_key)
            last = len(children) - 1
            for i in reversed(range(len(children))):
                pending.append(
                    (children[i], CORNER if i == last else CROSS, child_indent))

    def render(self, print=print, sort_siblings=False):
        for root in list(self.root_set):
            self.dump(root, print, sort_siblings)


def thread(messages):
    table = Table()
    for message in messages:
        try:
            table.add_message(message)
        except MissingIdentifier as e:
            logger.warning('skipping message: %s', e)
            table.skipped += 1
    table.prune()
    table.sort()
    return table
