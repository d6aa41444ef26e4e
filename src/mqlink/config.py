""" Connection configuration. A :class:`ConnectionConfig` captures one of two
    ways of reaching a queue: by name through the naming directory, or by a
    literal broker URL plus a literal queue name.
"""

import dataclasses
import enum
import os


DEFAULT_FACTORY_NAME = 'connectionFactory'
NAMING_FILENAME = 'mqlink.properties'


class Mode(enum.Enum):
    DIRECTORY = 'directory'
    DIRECT = 'direct'


@dataclasses.dataclass(frozen=True)
class ConnectionConfig:
    """ Immutable description of where messages go. Use :meth:`lookup`
        or :meth:`direct` rather than calling the constructor; the
        constructor only checks that exactly one mode is described. Empty
        or missing names are accepted here, and reported as
        :class:`ConfigResolutionError` when first resolved.

        :ivar queue_name: In directory mode, the alias to look up (for a
            ``queue.MyQueue = myqueue`` entry, this is ``MyQueue``). In direct
            mode, the physical queue name.
        :ivar broker_url: Literal broker address, direct mode only.
        :ivar naming_file: Properties file to consult, directory mode only;
            None means use :func:`naming_file`.
        :ivar factory_name: Name of the connection factory entry to look up,
            directory mode only.
    """

    queue_name: str
    broker_url: str = None
    naming_file: str = None
    factory_name: str = DEFAULT_FACTORY_NAME

    def __post_init__(self):

        if self.broker_url is not None and self.naming_file is not None:
            raise ValueError('a naming file is only used in directory mode')


    @classmethod
    def lookup(cls, queue_name, naming_file=None, factory_name=DEFAULT_FACTORY_NAME):
        return cls(queue_name, naming_file=naming_file, factory_name=factory_name)


    @classmethod
    def direct(cls, broker_url, queue_name):
        # A missing URL still means direct mode; it is reported when the
        # connection factory is first resolved.
        if broker_url is None:
            broker_url = ''
        return cls(queue_name, broker_url=broker_url)


    @property
    def mode(self):
        if self.broker_url is None:
            return Mode.DIRECTORY
        return Mode.DIRECT


# end of class ConnectionConfig



def directory():
    """ Return the directory location where we should be loading
        configuration files. $MQLINK_HOME takes precedence over ~/.mqlink.
        Returns None if neither can be determined.
    """

    found = directory.found

    if found is not None:
        return found

    try:
        found = os.environ['MQLINK_HOME']
    except KeyError:
        pass
    else:
        directory.found = found
        return found

    try:
        home = os.environ['HOME']
    except KeyError:
        return None

    found = os.path.join(home, '.mqlink')

    directory.found = found
    return found

directory.found = None



def naming_file(config=None):
    """ Return the path to the naming properties file for the supplied
        *config*. An explicit path in the configuration wins, followed by
        $MQLINK_NAMING_FILE, followed by the default filename in the
        :func:`directory`.
    """

    if config is not None and config.naming_file is not None:
        return config.naming_file

    try:
        return os.environ['MQLINK_NAMING_FILE']
    except KeyError:
        pass

    base_directory = directory()

    if base_directory is None:
        return None

    return os.path.join(base_directory, NAMING_FILENAME)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
