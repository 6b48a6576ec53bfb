import sys
from argparse import ArgumentParser

from pg_fencing.common.pg_logger import set_log_level
from pg_fencing.common.utils import get_watch_namespace
from pg_fencing.servers.errors import (ClusterNotFoundError, ConflictError, DeclarationStoreError,
                                       InvalidFencingRequest)
from pg_fencing.servers.fencing.declaration.command import FencingCommand
import pg_fencing.servers.plugin.messages as messages

FENCING_ON = 'on'
FENCING_OFF = 'off'
FENCING_STATUS = 'status'
FENCING_COMMAND = 'fencing'
ANNOTATE_COMMAND = 'annotate'


def build_parser():
    parser = ArgumentParser(prog='pg-fencing')
    parser.add_argument("-n", "--namespace", dest="namespace", help="namespace of the cluster")
    parser.add_argument("-l", "--loglevel", dest="loglevel", default="WARNING", help="log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    fencing_parser = subparsers.add_parser(FENCING_COMMAND, help="fence or unfence instances of a cluster")
    fencing_subparsers = fencing_parser.add_subparsers(dest="fencing_command", required=True)
    for fencing_command, help_text in ((FENCING_ON, "fence an instance, or all of them with *"),
                                       (FENCING_OFF, "unfence an instance, or all of them with *")):
        fencing_command_parser = fencing_subparsers.add_parser(fencing_command, help=help_text)
        fencing_command_parser.add_argument("cluster", help="cluster name")
        fencing_command_parser.add_argument("instance", help="instance name or *")
    status_parser = fencing_subparsers.add_parser(FENCING_STATUS, help="show the fencing state of a cluster")
    status_parser.add_argument("cluster", help="cluster name")

    annotate_parser = subparsers.add_parser(ANNOTATE_COMMAND, help="replace the fenced instances of a cluster")
    annotate_parser.add_argument("cluster", help="cluster name")
    annotate_parser.add_argument("fenced_instances", help="JSON array of instance names, or [\"*\"]")
    return parser


def run_command(arguments, fencing_command):
    if arguments.command == ANNOTATE_COMMAND:
        fencing_set = fencing_command.annotate(arguments.fenced_instances)
    elif arguments.fencing_command == FENCING_ON:
        fencing_set = fencing_command.fencing_on(arguments.instance)
    elif arguments.fencing_command == FENCING_OFF:
        fencing_set = fencing_command.fencing_off(arguments.instance)
    else:
        print_status(arguments.cluster, *fencing_command.status())
        return
    print(messages.FENCED_INSTANCES_UPDATED.format(arguments.cluster, fencing_set))


def print_status(cluster_name, fencing_set, instances_status):
    print(messages.STATUS_HEADER.format(cluster_name, fencing_set))
    print(messages.STATUS_ROW_FORMAT.format(*messages.STATUS_TABLE_HEADER))
    for instance_status in instances_status:
        print(messages.STATUS_ROW_FORMAT.format(
            instance_status.name, instance_status.role, str(instance_status.ready),
            str(instance_status.declared_fenced), instance_status.state.value))


def main(argv=None, fencing_command=None):
    arguments = build_parser().parse_args(argv)
    set_log_level(arguments.loglevel)
    namespace = arguments.namespace or get_watch_namespace()
    try:
        fencing_command = fencing_command or FencingCommand(namespace, arguments.cluster)
        run_command(arguments, fencing_command)
    except (InvalidFencingRequest, ConflictError, ClusterNotFoundError, DeclarationStoreError) as ex:
        print(messages.COMMAND_FAILED.format(ex), file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
