"""Node removal sequencing.

Removing a node touches up to three hosts: the load balancer, a
surviving control-plane node and the node itself. Each step is a
registered action sent to one of them. Steps are best-effort: a failed
step is logged and recorded, and the remaining steps still run.
"""

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from kubehop import actions
from kubehop.models import CommandTarget, ExecutionOutcome, Params
from kubehop.protocols import ActionRunner
from kubehop.services.errors import KubehopError

logger = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """What one teardown step did."""

    action: str
    target: str
    outcome: ExecutionOutcome | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True when the step ran and every command exited 0."""
        return self.error is None and self.outcome is not None and self.outcome.ok

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "target": self.target,
            "ok": self.ok,
            "error": self.error,
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


@dataclass
class LifecycleReport:
    """All steps of one node removal, in execution order."""

    node: str
    steps: list[StepOutcome] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return all(step.ok for step in self.steps)

    @property
    def errors(self) -> list[StepOutcome]:
        """Steps that raised before producing results."""
        return [step for step in self.steps if step.error is not None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "node": self.node,
            "ok": self.ok,
            "elapsed": round(self.elapsed, 3),
            "steps": [step.to_dict() for step in self.steps],
        }


class NodeLifecycleController:
    """Sequences the teardown actions for worker and control-plane nodes."""

    def __init__(
        self,
        runner: ActionRunner,
        step_timeouts: Mapping[str, float] | None = None,
    ) -> None:
        """Initialize controller.

        Args:
            runner: Action runner, normally the CommandOrchestrator
            step_timeouts: Seconds per teardown action. Defaults to
                actions.TIMEOUTS.
        """
        self.runner = runner
        self.step_timeouts = dict(actions.TIMEOUTS if step_timeouts is None else step_timeouts)

    async def _step(
        self,
        report: LifecycleReport,
        action: str,
        params: Params,
        target: CommandTarget,
        timeout: float | None = None,
    ) -> StepOutcome:
        """Run one step, recording instead of raising orchestration errors.

        timeout overrides the per-action budget from step_timeouts.
        """
        budget = timeout or self.step_timeouts.get(action)
        try:
            outcome = await self.runner.execute(action, params, target, budget)
        except KubehopError as e:
            logger.warning(
                "Step %s for %s failed on %s: %s",
                action,
                report.node,
                target.description,
                e,
            )
            step = StepOutcome(action=action, target=target.description, error=str(e))
        else:
            if not outcome.ok:
                logger.warning(
                    "Step %s for %s had %d failed command(s)",
                    action,
                    report.node,
                    len(outcome.failed),
                )
            step = StepOutcome(action=action, target=target.description, outcome=outcome)
        report.steps.append(step)
        return step

    async def remove_worker(
        self,
        control_target: CommandTarget,
        worker_target: CommandTarget,
        server_name: str,
        main_password: str,
        password: str,
        timeout: float | None = None,
    ) -> LifecycleReport:
        """Drain a worker from the cluster, then reset it.

        Args:
            control_target: Hop chain to a control-plane node
            worker_target: Hop chain to the worker being removed
            server_name: Kubernetes node name of the worker
            main_password: sudo password on the control-plane node
            password: sudo password on the worker
            timeout: Seconds per step, replacing the per-action budgets

        Returns:
            LifecycleReport with the drainNode and resetWorkerNode steps
        """
        report = LifecycleReport(node=server_name)
        start = time.perf_counter()
        logger.info("Removing worker %s", server_name)

        await self._step(
            report,
            actions.DRAIN_NODE,
            {"server_name": server_name, "password": main_password},
            control_target,
            timeout,
        )
        await self._step(
            report,
            actions.RESET_WORKER_NODE,
            {"server_name": server_name, "password": password},
            worker_target,
            timeout,
        )

        report.elapsed = time.perf_counter() - start
        logger.info(
            "Worker %s removal finished: %d step(s), ok=%s [%.2fs]",
            server_name,
            len(report.steps),
            report.ok,
            report.elapsed,
        )
        return report

    async def remove_master(
        self,
        target: CommandTarget,
        server_name: str,
        password: str,
        main_target: CommandTarget | None = None,
        main_password: str | None = None,
        lb_target: CommandTarget | None = None,
        lb_password: str | None = None,
        timeout: float | None = None,
    ) -> LifecycleReport:
        """Remove a control-plane node.

        The load balancer step runs only with both lb_target and
        lb_password. The drain and etcd steps run only with both
        main_target and main_password. The reset always runs last.

        Args:
            target: Hop chain to the node being removed
            server_name: Kubernetes node name
            password: sudo password on the node
            main_target: Hop chain to a surviving control-plane node
            main_password: sudo password on main_target
            lb_target: Hop chain to the HAProxy host
            lb_password: sudo password on lb_target
            timeout: Seconds per step, replacing the per-action budgets

        Returns:
            LifecycleReport listing the steps that ran
        """
        report = LifecycleReport(node=server_name)
        start = time.perf_counter()
        logger.info("Removing control-plane node %s", server_name)

        if lb_target and lb_password:
            await self._step(
                report,
                actions.REMOVE_HAPROXY_SERVER,
                {"server_name": server_name, "lb_password": lb_password},
                lb_target,
                timeout,
            )

        if main_target and main_password:
            main_params = {"server_name": server_name, "password": main_password}
            await self._step(report, actions.DRAIN_NODE, main_params, main_target, timeout)
            await self._step(report, actions.REMOVE_ETCD_MEMBER, main_params, main_target, timeout)

        await self._step(
            report,
            actions.RESET_MASTER_NODE,
            {"server_name": server_name, "password": password},
            target,
            timeout,
        )

        report.elapsed = time.perf_counter() - start
        logger.info(
            "Control-plane node %s removal finished: %d step(s), ok=%s [%.2fs]",
            server_name,
            len(report.steps),
            report.ok,
            report.elapsed,
        )
        return report
