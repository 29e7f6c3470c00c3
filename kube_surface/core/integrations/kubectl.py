from __future__ import annotations

import logging
import subprocess
from typing import NamedTuple, Optional

from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, wait_exponential

from kube_surface.core.models.config import settings

logger = logging.getLogger("kube_surface")


class KubectlStatus(NamedTuple):
    returncode: int

    @property
    def success(self) -> bool:
        return self.returncode == 0


class KubectlResult(NamedTuple):
    stdout: str
    stderr: str
    status: KubectlStatus


class Kubectl:
    """Runs kubectl against one context, retrying failed invocations.

    A failed invocation is never raised: callers get the last result back and decide
    whether the failure is fatal for them.
    """

    def __init__(
        self,
        context: Optional[str] = None,
        namespace: Optional[str] = None,
        kubeconfig: Optional[str] = None,
        log_failure_by_default: bool = True,
    ) -> None:
        self.context = context
        self.namespace = namespace
        self.kubeconfig = kubeconfig
        self.log_failure_by_default = log_failure_by_default

    def build_command(self, *args: str, output: Optional[str] = None, use_namespace: bool = True) -> list[str]:
        command = [settings.kubectl_binary, *args]
        if use_namespace and self.namespace is not None:
            command.append(f"--namespace={self.namespace}")
        if self.context is not None:
            command.append(f"--context={self.context}")
        if self.kubeconfig is not None:
            command.append(f"--kubeconfig={self.kubeconfig}")
        if output is not None:
            command.append(f"--output={output}")
        if settings.command_timeout is not None:
            command.append(f"--request-timeout={settings.command_timeout:g}s")
        return command

    def run(
        self,
        *args: str,
        output: Optional[str] = None,
        attempts: int = 1,
        use_namespace: bool = True,
        log_failure: Optional[bool] = None,
    ) -> KubectlResult:
        if log_failure is None:
            log_failure = self.log_failure_by_default

        command = self.build_command(*args, output=output, use_namespace=use_namespace)
        logger.debug(f"Running command: {' '.join(command)}")

        def log_failed_attempt(retry_state: RetryCallState) -> None:
            if not log_failure:
                return

            result: KubectlResult = retry_state.outcome.result()  # type: ignore
            logger.warning(
                f"The following command failed (attempt {retry_state.attempt_number}/{attempts}): "
                f"{' '.join(command)}"
            )
            if result.stderr:
                logger.warning(result.stderr.strip())

        retrying = Retrying(
            stop=stop_after_attempt(max(attempts, 1)),
            wait=wait_exponential(multiplier=settings.retry_backoff, max=10),
            retry=retry_if_result(lambda result: not result.status.success),
            after=log_failed_attempt,
            # NOTE: Give the last failed result back instead of raising RetryError
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),  # type: ignore
        )
        return retrying(self._execute, command)

    @staticmethod
    def _execute(command: list[str]) -> KubectlResult:
        timeout = settings.command_timeout
        try:
            process = subprocess.run(
                command,
                capture_output=True,
                text=True,
                # NOTE: kubectl honours --request-timeout, this is only a backstop for a hung process
                timeout=timeout * 2 if timeout is not None else None,
            )
        except subprocess.TimeoutExpired:
            return KubectlResult("", f"Timed out running {command[0]}", KubectlStatus(124))
        except FileNotFoundError:
            return KubectlResult("", f"{command[0]} not found", KubectlStatus(127))
        except OSError as e:
            return KubectlResult("", f"Could not run {command[0]}: {e}", KubectlStatus(126))

        return KubectlResult(process.stdout, process.stderr, KubectlStatus(process.returncode))
