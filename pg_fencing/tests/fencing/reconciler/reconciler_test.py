import threading
import time
import unittest
from unittest.mock import MagicMock, patch, call

import pg_fencing.common.settings as common_settings
from pg_fencing.instance_action.errors import CommandFailedError, InstanceUnreachableError
from pg_fencing.servers.errors import ClusterNotFoundError
from pg_fencing.servers.fencing import settings
from pg_fencing.servers.fencing.reconciler.reconciler import FencingReconciler
from pg_fencing.servers.fencing.reconciler.sync_lock import InstanceLock, get_running_operation
from pg_fencing.servers.fencing.types import (ClusterRoleAssignment, FencingSet, InstanceFencingState,
                                              ReconcileResult)
import pg_fencing.tests.common.test_settings as test_settings
import pg_fencing.tests.fencing.settings as fencing_test_settings
import pg_fencing.tests.fencing.utils.test_utils as test_utils

PRIMARY = test_settings.FAKE_PRIMARY_INSTANCE
REPLICA = test_settings.FAKE_REPLICA_INSTANCE
SECOND_REPLICA = test_settings.FAKE_SECOND_REPLICA_INSTANCE


class BaseReconcilerSetUp(unittest.TestCase):
    def setUp(self):
        self.store = test_utils.FakeDeclarationStore()
        self.k8s_manager = MagicMock()
        self.fencer = MagicMock()
        self.stopped_instances = set()
        self.fencer.is_fenced.side_effect = self._is_stopped
        self.fencer.fence.side_effect = self._stop_instance
        self.fencer.unfence.side_effect = self._start_instance
        self.released_operations = threading.Event()
        self.reconciler = FencingReconciler(test_settings.FAKE_NAMESPACE, test_settings.FAKE_CLUSTER_NAME,
                                            self.store, self.k8s_manager, self.fencer, workers=3)
        self.fake_cluster_info = test_utils.get_fake_cluster_info()
        self.k8s_manager.get_cluster_info.return_value = self.fake_cluster_info
        self.k8s_manager.get_instances_info.side_effect = self._get_instances_info
        self._set_inventory(test_settings.FAKE_INSTANCES)
        self._set_role_assignment(PRIMARY)

    def tearDown(self):
        self._release_blocked_operations()

    def _set_inventory(self, instance_names):
        self.inventory = list(instance_names)

    def _get_instances_info(self, namespace, cluster_name):
        return [test_utils.get_fake_instance_info(instance_name, ready=instance_name not in self.stopped_instances)
                for instance_name in self.inventory]

    def _is_stopped(self, instance_info):
        return instance_info.name in self.stopped_instances

    def _stop_instance(self, instance_info):
        self.stopped_instances.add(instance_info.name)

    def _start_instance(self, instance_info):
        self.stopped_instances.discard(instance_info.name)

    def _block_until_released(self, instance_info):
        self.released_operations.wait(5)

    def _release_blocked_operations(self):
        self.released_operations.set()
        for _ in range(500):
            if not any(get_running_operation(self.reconciler.instance_lock_key, instance_name)
                       for instance_name in test_settings.FAKE_INSTANCES):
                return
            time.sleep(0.01)

    def _set_role_assignment(self, primary, primary_after_pass=None):
        replicas = frozenset(name for name in test_settings.FAKE_INSTANCES if name != primary)
        self.k8s_manager.generate_role_assignment.return_value = ClusterRoleAssignment(primary, replicas)
        primary_after_pass = primary_after_pass or primary
        replicas_after_pass = frozenset(name for name in test_settings.FAKE_INSTANCES if name != primary_after_pass)
        self.k8s_manager.get_role_assignment.return_value = ClusterRoleAssignment(primary_after_pass,
                                                                                  replicas_after_pass)

    def _get_fenced_instance_names(self, fencer_method):
        return sorted(call_args[0][0].name for call_args in fencer_method.call_args_list)

    def _assert_states(self, expected_states):
        self.assertEqual(self.reconciler.get_states(), expected_states)


class TestReconcileFencing(BaseReconcilerSetUp):
    def test_nothing_declared_does_nothing(self):
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.fencer.fence.assert_not_called()
        self.fencer.unfence.assert_not_called()
        self._assert_states({name: InstanceFencingState.UNFENCED for name in test_settings.FAKE_INSTANCES})

    def test_fence_declared_instance(self):
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self._get_fenced_instance_names(self.fencer.fence), [REPLICA])
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCED)
        self.assertEqual(self.reconciler.get_state(PRIMARY), InstanceFencingState.UNFENCED)
        self.k8s_manager.create_k8s_event_for_cluster.assert_called_once_with(
            self.fake_cluster_info, 'Instance {} is fenced'.format(REPLICA), settings.FENCE_ACTION,
            settings.SUCCESSFUL_MESSAGE_TYPE)

    def test_reconcile_twice_is_idempotent(self):
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        self.reconciler.reconcile()
        states = self.reconciler.get_states()
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self.fencer.fence.call_count, 1)
        self.assertEqual(self.reconciler.get_states(), states)

    def test_declared_instance_not_in_inventory_is_ignored(self):
        self.store.fencing_set = FencingSet.explicit([test_settings.FAKE_UNKNOWN_INSTANCE])
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.fencer.fence.assert_not_called()
        self.assertNotIn(test_settings.FAKE_UNKNOWN_INSTANCE, self.reconciler.get_states())

    def test_fence_failure_keeps_fencing_requested_and_retries(self):
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        self.fencer.fence.side_effect = [InstanceUnreachableError(REPLICA, test_settings.FAKE_ERROR_MESSAGE), None]
        result = self.reconciler.reconcile()
        self.assertFalse(result.converged)
        self.assertEqual(result.failed_instances, [REPLICA])
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCING_REQUESTED)
        self.assertEqual(self.k8s_manager.create_k8s_event_for_cluster.call_args[0][3],
                         settings.FAILED_MESSAGE_TYPE)

        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self.fencer.fence.call_count, 2)
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCED)

    def test_unexpected_fence_error_keeps_fencing_requested(self):
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        self.fencer.fence.side_effect = ValueError('unexpected')
        result = self.reconciler.reconcile()
        self.assertFalse(result.converged)
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCING_REQUESTED)

    @patch('{}.EXECUTOR_TIMEOUT_IN_SECONDS'.format(fencing_test_settings.FENCING_SETTINGS_PATH), 0.1)
    def test_fence_timeout_keeps_fencing_requested(self):
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        self.fencer.fence.side_effect = self._block_until_released
        result = self.reconciler.reconcile()
        self.assertEqual(result.failed_instances, [REPLICA])
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCING_REQUESTED)
        self.assertEqual(get_running_operation(self.reconciler.instance_lock_key, REPLICA), settings.FENCE_ACTION)

    @patch('{}.EXECUTOR_TIMEOUT_IN_SECONDS'.format(fencing_test_settings.FENCING_SETTINGS_PATH), 0.1)
    def test_timed_out_fence_still_running_blocks_next_operation(self):
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        self.fencer.fence.side_effect = self._block_until_released
        self.reconciler.reconcile()
        result = self.reconciler.reconcile()
        self.assertFalse(result.converged)
        self.assertEqual(result.failed_instances, [REPLICA])
        self.assertEqual(self.fencer.fence.call_count, 1)

        self.store.fencing_set = FencingSet.explicit()
        result = self.reconciler.reconcile()
        self.assertEqual(result.failed_instances, [REPLICA])
        self.fencer.unfence.assert_not_called()

        self._release_blocked_operations()
        self.assertIsNone(get_running_operation(self.reconciler.instance_lock_key, REPLICA))
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self._get_fenced_instance_names(self.fencer.unfence), [REPLICA])
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.UNFENCED)

    def test_fenced_instance_accepting_connections_again_is_fenced_again(self):
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        self.reconciler.reconcile()
        self.stopped_instances.discard(REPLICA)
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self.fencer.fence.call_count, 2)
        self.assertIn(REPLICA, self.stopped_instances)
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCED)

    def test_failed_refence_of_instance_accepting_connections_is_not_converged(self):
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        self.reconciler.reconcile()
        self.stopped_instances.discard(REPLICA)
        self.fencer.fence.side_effect = InstanceUnreachableError(REPLICA, test_settings.FAKE_ERROR_MESSAGE)
        result = self.reconciler.reconcile()
        self.assertFalse(result.converged)
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCING_REQUESTED)

    def test_fence_primary_keeps_primary_role(self):
        self.store.fencing_set = FencingSet.explicit([PRIMARY])
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(result.topology_error, '')
        fenced_instance_info = self.fencer.fence.call_args[0][0]
        self.assertEqual(fenced_instance_info.role, common_settings.PRIMARY_ROLE)
        self.assertFalse(self.reconciler.topology_guard.is_failover_allowed())
        self.assertFalse(self.reconciler.topology_guard.is_role_change_allowed(PRIMARY))
        self.assertTrue(self.reconciler.topology_guard.is_role_change_allowed(REPLICA))

    def test_primary_change_during_fencing_is_reported(self):
        self.store.fencing_set = FencingSet.explicit([PRIMARY])
        self._set_role_assignment(PRIMARY, primary_after_pass=REPLICA)
        result = self.reconciler.reconcile()
        self.assertNotEqual(result.topology_error, '')
        self.assertEqual(self.k8s_manager.create_k8s_event_for_cluster.call_args[0][3],
                         settings.FAILED_MESSAGE_TYPE)

    def test_primary_change_without_fencing_is_not_reported(self):
        self._set_role_assignment(PRIMARY, primary_after_pass=REPLICA)
        result = self.reconciler.reconcile()
        self.assertEqual(result.topology_error, '')

    def test_missing_cluster_is_not_converged(self):
        self.store = MagicMock()
        self.store.get.side_effect = ClusterNotFoundError(test_settings.FAKE_CLUSTER_NAME,
                                                          test_settings.FAKE_NAMESPACE)
        self.reconciler.store = self.store
        result = self.reconciler.reconcile_safely()
        self.assertFalse(result.converged)
        self.fencer.fence.assert_not_called()


class TestReconcileUnfencing(BaseReconcilerSetUp):
    def setUp(self):
        super().setUp()
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        self.reconciler.reconcile()
        self.fencer.reset_mock()

    def test_unfence_removed_instance(self):
        self.store.fencing_set = FencingSet.explicit()
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self._get_fenced_instance_names(self.fencer.unfence), [REPLICA])
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.UNFENCED)
        self.fencer.fence.assert_not_called()

    def test_unfence_failure_keeps_unfencing_requested(self):
        self.store.fencing_set = FencingSet.explicit()
        self.fencer.unfence.side_effect = CommandFailedError(REPLICA, ['pg_ctl', 'start'], 1,
                                                             test_settings.FAKE_ERROR_MESSAGE)
        result = self.reconciler.reconcile()
        self.assertFalse(result.converged)
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.UNFENCING_REQUESTED)

    def test_fence_again_while_unfencing_requested(self):
        self.store.fencing_set = FencingSet.explicit()
        self.fencer.unfence.side_effect = InstanceUnreachableError(REPLICA, test_settings.FAKE_ERROR_MESSAGE)
        self.reconciler.reconcile()
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self._get_fenced_instance_names(self.fencer.fence), [REPLICA])
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCED)

    def test_unfence_while_fencing_requested(self):
        self.store.fencing_set = FencingSet.explicit([SECOND_REPLICA])
        self.fencer.fence.side_effect = InstanceUnreachableError(SECOND_REPLICA, test_settings.FAKE_ERROR_MESSAGE)
        self.reconciler.reconcile()
        self.assertEqual(self.reconciler.get_state(SECOND_REPLICA), InstanceFencingState.FENCING_REQUESTED)
        self.store.fencing_set = FencingSet.explicit()
        self.fencer.unfence.reset_mock()
        self.reconciler.reconcile()
        self.assertEqual(self._get_fenced_instance_names(self.fencer.unfence), [SECOND_REPLICA])
        self.assertEqual(self.reconciler.get_state(SECOND_REPLICA), InstanceFencingState.UNFENCED)

    def test_instance_removed_from_inventory_drops_state(self):
        self._set_inventory([PRIMARY, SECOND_REPLICA])
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertNotIn(REPLICA, self.reconciler.get_states())
        self.fencer.unfence.assert_not_called()


class TestReconcileWildcard(BaseReconcilerSetUp):
    def test_fence_all_instances(self):
        self.store.fencing_set = FencingSet.all_instances()
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self._get_fenced_instance_names(self.fencer.fence), sorted(test_settings.FAKE_INSTANCES))
        self._assert_states({name: InstanceFencingState.FENCED for name in test_settings.FAKE_INSTANCES})

    def test_instance_added_after_wildcard_is_fenced(self):
        self.store.fencing_set = FencingSet.all_instances()
        self._set_inventory([PRIMARY, REPLICA])
        self.reconciler.reconcile()
        self._set_inventory(test_settings.FAKE_INSTANCES)
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self.fencer.fence.call_count, 3)
        self.assertEqual(self.reconciler.get_state(SECOND_REPLICA), InstanceFencingState.FENCED)

    def test_unfence_all_instances(self):
        self.store.fencing_set = FencingSet.all_instances()
        self.reconciler.reconcile()
        self.store.fencing_set = FencingSet.explicit()
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self._get_fenced_instance_names(self.fencer.unfence), sorted(test_settings.FAKE_INSTANCES))


class TestClusterScenarios(BaseReconcilerSetUp):
    def test_fence_primary_and_one_replica(self):
        self.store.fencing_set = FencingSet.explicit([PRIMARY, REPLICA])
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self._assert_states({PRIMARY: InstanceFencingState.FENCED, REPLICA: InstanceFencingState.FENCED,
                             SECOND_REPLICA: InstanceFencingState.UNFENCED})
        self.assertEqual(result.topology_error, '')

        self.store.fencing_set = FencingSet.explicit()
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self._assert_states({name: InstanceFencingState.UNFENCED for name in test_settings.FAKE_INSTANCES})
        self.assertEqual(self._get_fenced_instance_names(self.fencer.unfence), [PRIMARY, REPLICA])

    def test_fence_all_then_unfence_one_replica(self):
        self.store.fencing_set = FencingSet.all_instances()
        self.reconciler.reconcile()
        self.store.fencing_set = FencingSet.explicit([PRIMARY, SECOND_REPLICA])
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self._assert_states({PRIMARY: InstanceFencingState.FENCED, REPLICA: InstanceFencingState.UNFENCED,
                             SECOND_REPLICA: InstanceFencingState.FENCED})


class TestInitialState(BaseReconcilerSetUp):
    def test_instance_fenced_before_restart_is_detected(self):
        self.stopped_instances.add(REPLICA)
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.fencer.fence.assert_not_called()
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCED)

    def test_instance_fenced_before_restart_and_no_longer_declared_is_unfenced(self):
        self.stopped_instances.add(REPLICA)
        self.reconciler.reconcile()
        self.assertEqual(self._get_fenced_instance_names(self.fencer.unfence), [REPLICA])

    def test_detection_failure_assumes_unfenced(self):
        self.fencer.is_fenced.side_effect = InstanceUnreachableError(REPLICA, test_settings.FAKE_ERROR_MESSAGE)
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        self.reconciler.reconcile()
        self.assertEqual(self._get_fenced_instance_names(self.fencer.fence), [REPLICA])

    def test_unexpected_detection_error_affects_only_that_instance(self):
        self.fencer.is_fenced.side_effect = self._fail_detection_of_replica
        self.store.fencing_set = FencingSet.all_instances()
        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self._get_fenced_instance_names(self.fencer.fence), sorted(test_settings.FAKE_INSTANCES))

    @patch('{}.EXECUTOR_TIMEOUT_IN_SECONDS'.format(fencing_test_settings.FENCING_SETTINGS_PATH), 0.1)
    def test_timed_out_detection_still_running_blocks_fencing(self):
        self.fencer.is_fenced.side_effect = self._block_until_released
        self.store.fencing_set = FencingSet.explicit([REPLICA])
        result = self.reconciler.reconcile()
        self.assertEqual(result.failed_instances, [REPLICA])
        self.fencer.fence.assert_not_called()

    def _fail_detection_of_replica(self, instance_info):
        if instance_info.name == REPLICA:
            raise ValueError('unexpected')
        return False


class TestBusyInstance(BaseReconcilerSetUp):
    def test_busy_instance_is_skipped(self):
        self.store.fencing_set = FencingSet.all_instances()
        with InstanceLock(self.reconciler.instance_lock_key, REPLICA, 'test_busy_instance_is_skipped'):
            result = self.reconciler.reconcile()
        self.assertFalse(result.converged)
        self.assertEqual(result.failed_instances, [REPLICA])
        self.assertEqual(self._get_fenced_instance_names(self.fencer.fence), [PRIMARY, SECOND_REPLICA])

        result = self.reconciler.reconcile()
        self.assertTrue(result.converged)
        self.assertEqual(self.reconciler.get_state(REPLICA), InstanceFencingState.FENCED)


class TestTriggers(BaseReconcilerSetUp):
    def test_triggers_are_coalesced(self):
        self.reconciler.trigger('first')
        self.reconciler.trigger('second')
        self.reconciler.trigger('third')
        self.assertEqual(self.reconciler._wait_for_triggers(), 'third')
        self.assertTrue(self.reconciler._triggers.empty())

    def test_run_forever_reconciles_on_trigger_until_stopped(self):
        self.reconciler.reconcile_safely = MagicMock(side_effect=self._stop_after_pass)
        self.reconciler.trigger(settings.RESYNC_TRIGGER)
        test_utils.run_function_with_timeout(self.reconciler.run_forever, 1)
        self.reconciler.reconcile_safely.assert_called_once_with()

    def test_stop_without_trigger_does_not_reconcile(self):
        self.reconciler.reconcile_safely = MagicMock()
        self.reconciler.stop()
        test_utils.run_function_with_timeout(self.reconciler.run_forever, 1)
        self.reconciler.reconcile_safely.assert_not_called()

    @patch('{}.threading.Timer'.format(fencing_test_settings.RECONCILER_PATH))
    def test_not_converged_pass_schedules_retry_with_backoff(self, mock_timer):
        self.reconciler._schedule_retry_if_not_converged(ReconcileResult(converged=False))
        self.reconciler._schedule_retry_if_not_converged(ReconcileResult(converged=False))
        first_delay = settings.RETRY_DELAY_IN_SECONDS
        mock_timer.assert_has_calls([
            call(first_delay, self.reconciler.trigger, args=(settings.RETRY_TRIGGER,)),
            call().start(),
            call(first_delay * settings.RETRY_EXPONENTIAL_BACKOFF, self.reconciler.trigger,
                 args=(settings.RETRY_TRIGGER,)),
            call().start()])

    @patch('{}.threading.Timer'.format(fencing_test_settings.RECONCILER_PATH))
    def test_converged_pass_does_not_schedule_retry(self, mock_timer):
        self.reconciler._schedule_retry_if_not_converged(ReconcileResult(converged=True))
        mock_timer.assert_not_called()

    def _stop_after_pass(self):
        self.reconciler.stop()
        return ReconcileResult()
