"""
Provisioning sequence for the public IP address walkthrough.

The sequence creates a resource group, two public IP addresses and a VM,
moves the VM's public IP from the first address to the second, detaches it and
deletes the detached address. Whatever happens on the way, ``cleanup`` runs
afterwards and deletes the resource group, which takes every child resource
with it.

All per-run state lives in a ``RunContext``. The resource group ID is recorded
on it as soon as the group exists so cleanup can find it after any failure.
"""

import time
import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple
from dataclasses import dataclass, field

from .config import ResourceNames, SampleConfig
from .errors import ProviderError
from .utils import describe_public_ip_address, describe_virtual_machine, format_duration

logger = logging.getLogger(__name__)


class RunState(Enum):
    NOT_STARTED = 'not_started'
    GROUP_CREATED = 'group_created'
    IP1_CREATED = 'ip1_created'
    VM_CREATED = 'vm_created'
    IP2_CREATED = 'ip2_created'
    REBOUND = 'rebound'
    DETACHED = 'detached'
    PUBLIC_IP_DELETED = 'public_ip_deleted'
    CLEANING_UP = 'cleaning_up'
    GROUP_DELETED = 'group_deleted'
    CLEANUP_FAILED = 'cleanup_failed'
    NOTHING_TO_CLEAN = 'nothing_to_clean'


TERMINAL_STATES = (RunState.GROUP_DELETED, RunState.CLEANUP_FAILED, RunState.NOTHING_TO_CLEAN)


class CleanupOutcome(Enum):
    DELETED = 'deleted'
    ALREADY_DELETED = 'already_deleted'
    NOTHING_TO_CLEAN = 'nothing_to_clean'
    FAILED = 'failed'


@dataclass
class StepResult:
    """Outcome of one forward step"""
    description: str
    state: Optional[RunState]
    succeeded: bool
    duration: float
    error: Optional[Exception] = None
    skipped: bool = False


@dataclass
class RunContext:
    """Everything one run knows about the resources it created"""
    names: ResourceNames
    resource_group_id: Optional[str] = None
    state: RunState = RunState.NOT_STARTED
    history: List[RunState] = field(default_factory=lambda: [RunState.NOT_STARTED])
    steps: List[StepResult] = field(default_factory=list)

    # Snapshots returned by the SDK; refresh before reading network state
    public_ip_1: object = None
    public_ip_2: object = None
    vm: object = None
    nic: object = None

    initial_public_ip: object = None
    rebound_public_ip: object = None
    detached_public_ip: object = None

    error: Optional[Exception] = None
    cleanup_outcome: Optional[CleanupOutcome] = None

    def transition(self, state: RunState):
        self.state = state
        self.history.append(state)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.cleanup_outcome in (
            CleanupOutcome.DELETED, CleanupOutcome.ALREADY_DELETED
        )


# An action returning False did nothing; its state transition is skipped
Step = Tuple[str, Optional[RunState], Callable[[RunContext], Optional[bool]]]


class ProvisioningSequencer:
    """Runs the forward steps in order, then always tears down the resource group"""

    def __init__(self, manager, config: SampleConfig, reraise: bool = True):
        self.manager = manager
        self.config = config
        # Re-raise the first forward error once cleanup has finished
        self.reraise = reraise

    def new_context(self) -> RunContext:
        return RunContext(names=ResourceNames.generate(self.config.resource_group_prefix))

    def run(self, context: Optional[RunContext] = None) -> RunContext:
        context = context or self.new_context()
        run_start = time.time()
        logger.info(f"🚀 Starting public IP address walkthrough in {self.config.location}")

        try:
            for description, state, action in self._forward_steps():
                result = self._execute_step(context, description, state, action)
                if not result.succeeded:
                    break
        finally:
            self.cleanup(context)

        self._log_summary(context, time.time() - run_start)
        if context.error is not None and self.reraise:
            raise context.error
        return context

    def _forward_steps(self) -> List[Step]:
        return [
            ("Create resource group", RunState.GROUP_CREATED, self._create_resource_group),
            ("Create first public IP address", RunState.IP1_CREATED, self._create_first_public_ip),
            ("Create virtual machine", RunState.VM_CREATED, self._create_virtual_machine),
            ("Read public IP address after create", None, self._inspect_initial_public_ip),
            ("Create second public IP address", RunState.IP2_CREATED, self._create_second_public_ip),
            ("Rebind primary NIC to second public IP", RunState.REBOUND, self._rebind_public_ip),
            ("Read public IP address after update", None, self._inspect_rebound_public_ip),
            ("Detach public IP address", RunState.DETACHED, self._detach_public_ip),
            ("Delete detached public IP address", RunState.PUBLIC_IP_DELETED, self._delete_detached_public_ip),
        ]

    def _execute_step(self, context: RunContext, description: str,
                      state: Optional[RunState], action) -> StepResult:
        start = time.time()
        try:
            performed = action(context) is not False
        except Exception as e:
            logger.error(f"❌ {description} failed: {e}")
            result = StepResult(description, state, False, time.time() - start, e)
            context.error = e
        else:
            result = StepResult(description, state, True, time.time() - start, skipped=not performed)
            if state is not None and performed:
                context.transition(state)
            elif not performed:
                logger.info(f"⏭️ {description}: nothing to do")
        context.steps.append(result)
        return result

    def _create_resource_group(self, context: RunContext):
        resource_group = self.manager.create_resource_group(context.names.resource_group, self.config.location)
        # Recorded first so cleanup can find the group after any later failure
        context.resource_group_id = resource_group.id

    def _create_first_public_ip(self, context: RunContext):
        context.public_ip_1 = self.manager.create_public_ip_address(
            context.names.resource_group, context.names.public_ip_1,
            self.config.public_ip_allocation_method, context.names.dns_label_1
        )

    def _create_virtual_machine(self, context: RunContext):
        logger.info("Creating a Windows VM")
        t1 = time.time()
        context.vm = self.manager.create_virtual_machine(
            context.names.resource_group, context.names.vm_name, context.public_ip_1
        )
        logger.info(f"Created VM: (took {format_duration(time.time() - t1)}) {context.vm.id}")
        logger.info(describe_virtual_machine(context.vm))

    def _inspect_initial_public_ip(self, context: RunContext):
        logger.info("Public IP address associated with the VM's primary NIC [After create]")
        context.vm = self.manager.refresh_virtual_machine(context.vm)
        context.initial_public_ip = self.manager.get_primary_public_ip_address(context.vm)
        logger.info(describe_public_ip_address(context.initial_public_ip))

    def _create_second_public_ip(self, context: RunContext):
        context.public_ip_2 = self.manager.create_public_ip_address(
            context.names.resource_group, context.names.public_ip_2,
            self.config.public_ip_allocation_method, context.names.dns_label_2
        )

    def _rebind_public_ip(self, context: RunContext):
        logger.info("Updating the VM's primary NIC with new public IP address")
        nic = self.manager.get_primary_network_interface(context.vm)
        context.nic = self.manager.update_network_interface_primary_ip(nic, context.public_ip_2)

    def _inspect_rebound_public_ip(self, context: RunContext):
        logger.info("Public IP address associated with the VM's primary NIC [After Update]")
        context.vm = self.manager.refresh_virtual_machine(context.vm)
        context.rebound_public_ip = self.manager.get_primary_public_ip_address(context.vm)
        logger.info(describe_public_ip_address(context.rebound_public_ip))

    def _detach_public_ip(self, context: RunContext):
        logger.info("Removing public IP address associated with the VM")
        context.vm = self.manager.refresh_virtual_machine(context.vm)
        nic = self.manager.get_primary_network_interface(context.vm)
        context.detached_public_ip = self.manager.get_primary_public_ip_address(context.vm)
        if context.detached_public_ip is None:
            logger.warning("⚠️  Primary NIC has no public IP address, nothing to remove")
            context.nic = nic
            return False

        context.nic = self.manager.update_network_interface_primary_ip(nic, None)

        # The delete must only be attempted once the detach is visible
        still_bound = self.manager.get_primary_public_ip_address(context.vm)
        if still_bound is not None:
            raise ProviderError(
                "detach public IP address",
                f"primary NIC still references {still_bound.id}"
            )
        logger.info("Removed public IP address associated with the VM")

    def _delete_detached_public_ip(self, context: RunContext):
        if context.detached_public_ip is None:
            return False
        self.manager.delete_public_ip_address(context.detached_public_ip.id)

    def cleanup(self, context: RunContext) -> CleanupOutcome:
        """Delete the run's resource group; never raises"""
        context.transition(RunState.CLEANING_UP)

        if context.resource_group_id is None:
            logger.info("Did not create any resources in Azure. No clean up is necessary")
            context.cleanup_outcome = CleanupOutcome.NOTHING_TO_CLEAN
            context.transition(RunState.NOTHING_TO_CLEAN)
            return context.cleanup_outcome

        try:
            resources = self.manager.list_resources_in_group(context.names.resource_group)
            if resources:
                logger.info("Resources to be deleted:")
                for resource in resources:
                    logger.info(f"  - {resource['name']} ({resource['type']})")

            logger.info(f"Deleting Resource Group: {context.resource_group_id}")
            if self.manager.delete_resource_group(context.resource_group_id):
                context.cleanup_outcome = CleanupOutcome.DELETED
                logger.info(f"Deleted Resource Group: {context.resource_group_id}")
            else:
                context.cleanup_outcome = CleanupOutcome.ALREADY_DELETED
            context.transition(RunState.GROUP_DELETED)
        except Exception as e:
            logger.error(f"❌ Failed to delete resource group {context.resource_group_id}: {e}")
            context.cleanup_outcome = CleanupOutcome.FAILED
            context.transition(RunState.CLEANUP_FAILED)

        return context.cleanup_outcome

    def _log_summary(self, context: RunContext, duration: float):
        logger.info("")
        logger.info(f"📁 Resource Group: {context.names.resource_group}")
        for step in context.steps:
            marker = "❌" if not step.succeeded else "⏭️" if step.skipped else "✅"
            logger.info(f"{marker} {step.description} ({format_duration(step.duration)})")
        if context.initial_public_ip is not None:
            logger.info(f"🌐 Public IP after create: {context.initial_public_ip.name}")
        if context.rebound_public_ip is not None:
            logger.info(f"🌐 Public IP after update: {context.rebound_public_ip.name}")
        logger.info(f"🧹 Cleanup: {context.cleanup_outcome.value}")
        logger.info(f"⏱️ Walkthrough finished in {format_duration(duration)} (state: {context.state.value})")
