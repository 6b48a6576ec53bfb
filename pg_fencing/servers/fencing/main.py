from argparse import ArgumentParser

from pg_fencing.common.pg_logger import set_log_level
from pg_fencing.common.utils import get_watch_namespace
from pg_fencing.servers.fencing.fencing_manager import FencingManager


def main():
    parser = ArgumentParser()
    parser.add_argument("-n", "--namespace", dest="namespace", help="namespace of the watched clusters")
    parser.add_argument("-l", "--loglevel", dest="loglevel", help="log level")
    arguments = parser.parse_args()

    set_log_level(arguments.loglevel)
    fencing_manager = FencingManager(arguments.namespace or get_watch_namespace())
    fencing_manager.start_fencing_controller()


if __name__ == '__main__':
    main()
