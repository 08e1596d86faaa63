class ThreadingError(Exception): pass


class MissingIdentifier(ThreadingError):
    '''A message without a Message-Id, it can not be placed in a thread'''


class MalformedRecord(ThreadingError):
    '''A mailbox entry that could not be decoded into a message'''


class UnreadablePath(ThreadingError):
    '''The mailbox path does not exist or can not be opened'''
