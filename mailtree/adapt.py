import os
import re
import logging
import mailbox
import email.errors
import email.utils
from datetime import timezone
from email import policy
from email.parser import BytesParser

from . import message
from .errors import MalformedRecord, UnreadablePath

logger = logging.getLogger(__name__)

_message_id = re.compile('(<[^>]+>)')
def extract_ids(value):
	if value is None:
		return []
	value = str(value)
	ids = _message_id.findall(value)
	if not ids and value.strip():
		ids = [value.strip()]
	return ids


def parse_date(value):
	if value is None:
		return None
	try:
		date = email.utils.parsedate_to_datetime(str(value))
	except (TypeError, ValueError):
		logger.debug('unparseable date %r', value)
		return None
	if date.tzinfo is None:
		date = date.replace(tzinfo=timezone.utc)
	return date


_whitespace = re.compile(r'\s+')
def normalise_subject(subject):
	if subject is None:
		return None
	return _whitespace.sub(' ', str(subject)).strip()


def read_message(mail):
	ids = extract_ids(mail['Message-Id'])
	return message(
		id=ids[0] if ids else None,
		subject=normalise_subject(mail['Subject']),
		date=parse_date(mail['Date']),
		references=extract_ids(mail['References']),
		in_reply_to=extract_ids(mail['In-Reply-To'])
	)


class MailboxReader(object):
	'''Message records from a maildir, a directory of messages or a mbox

	Entries that can not be decoded are logged and counted in `skipped`.
	'''

	def __init__(self, path):
		self._path = path
		self._parser = BytesParser(policy=policy.default)
		self.skipped = 0

	def _is_maildir(self):
		return all(os.path.isdir(os.path.join(self._path, d)) for d in ('cur', 'new'))

	def open(self):
		'''Open the mailbox, returns (keys, reader of raw entry bytes)'''
		path = self._path
		try:
			if os.path.isdir(path):
				if self._is_maildir():
					box = mailbox.Maildir(path, factory=None, create=False)
					return box.keys(), box.get_bytes
				names = sorted(
					n for n in os.listdir(path)
					if os.path.isfile(os.path.join(path, n)))
				return names, self._read_file
			if os.path.isfile(path):
				box = mailbox.mbox(path, factory=None, create=False)
				return box.keys(), box.get_bytes
		except OSError as e:
			raise UnreadablePath('can not read %s: %s' % (path, e)) from e
		raise UnreadablePath('no such mailbox: %s' % path)

	def _read_file(self, name):
		with open(os.path.join(self._path, name), 'rb') as f:
			return f.read()

	def entries(self):
		'''Yield (key, raw bytes) for every entry of the mailbox'''
		keys, get_bytes = self.open()
		logger.debug('reading %d entries from %s', len(keys), self._path)
		for key in keys:
			try:
				data = get_bytes(key)
			except (KeyError, OSError) as e:
				logger.warning('could not read entry %s: %s', key, e)
				self.skipped += 1
				continue
			yield key, data

	def decode(self, key, data):
		try:
			return read_message(self._parser.parsebytes(data))
		except (email.errors.MessageError, UnicodeError, ValueError, TypeError) as e:
			raise MalformedRecord('entry %s: %s' % (key, e)) from e

	def __iter__(self):
		for key, data in self.entries():
			try:
				yield self.decode(key, data)
			except MalformedRecord as e:
				logger.warning('skipping malformed %s', e)
				self.skipped += 1
