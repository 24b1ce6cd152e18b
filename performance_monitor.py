#!/usr/bin/env python3
"""
Performance Monitor for DataFlow Verification Automation

Timing per step of a run, with process memory and CPU sampled on a
background thread while the run is active. Time the operator spends in the
Playwright Inspector is included in step durations; the number of
interventions is recorded next to it so slow steps can be told apart from
manual ones.
"""

import time
import psutil
import logging
import json
import threading
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SLOW_OPERATION_SECONDS = 5.0

@dataclass
class OperationMetrics:
    """Timing and resource figures for one measured operation"""
    operation_name: str
    start_time: float
    end_time: float
    duration: float
    memory_before: float
    memory_after: float
    memory_delta: float
    success: bool
    error_message: Optional[str] = None

@dataclass
class StepPerformanceData:
    """Performance data for one step (page) of a scenario"""
    step_name: str
    step_index: int
    started_at: float
    duration: float = 0.0
    memory_peak: float = 0.0
    cpu_peak: float = 0.0
    manual_interventions: int = 0
    success: bool = False

@dataclass
class RunPerformanceReport:
    """Performance report for a complete scenario run"""
    run_id: str
    start_time: float
    end_time: float
    total_duration: float
    steps_processed: int
    steps_successful: int
    steps_failed: int
    memory_peak: float
    memory_average: float
    cpu_peak: float
    cpu_average: float
    steps: List[StepPerformanceData] = field(default_factory=list)
    operations: List[OperationMetrics] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

class PerformanceMonitor:
    """
    Collects step timings and resource samples for one automation run
    """

    def __init__(self, enable_monitoring: bool = True, sample_interval: float = 1.0):
        self.enable_monitoring = enable_monitoring
        self.sample_interval = sample_interval

        self.operation_metrics: List[OperationMetrics] = []
        self.step_data: List[StepPerformanceData] = []
        self.current_step: Optional[StepPerformanceData] = None

        self.memory_samples: deque = deque(maxlen=1000)
        self.cpu_samples: deque = deque(maxlen=1000)
        self.samples_taken = 0
        self.step_sample_start = 0
        self.monitoring_thread: Optional[threading.Thread] = None
        self.monitoring_active = False

        self.run_start_time: Optional[float] = None
        self.run_end_time: Optional[float] = None

        logger.debug("Performance Monitor initialized")

    def start_run_monitoring(self, run_id: str):
        """Reset collected data and start background sampling"""
        if not self.enable_monitoring:
            return

        self.run_start_time = time.time()
        self.run_end_time = None
        self.operation_metrics.clear()
        self.step_data.clear()
        self.memory_samples.clear()
        self.cpu_samples.clear()
        self.samples_taken = 0
        self.step_sample_start = 0
        self._start_background_monitoring()
        logger.info(f"Performance monitoring started for run: {run_id}")

    def stop_run_monitoring(self):
        if not self.enable_monitoring:
            return

        self.run_end_time = time.time()
        self._stop_background_monitoring()
        logger.info("Performance monitoring stopped")

    def _start_background_monitoring(self):
        if self.monitoring_active:
            return
        self.monitoring_active = True
        self.monitoring_thread = threading.Thread(target=self._monitor_resources, daemon=True)
        self.monitoring_thread.start()

    def _stop_background_monitoring(self):
        self.monitoring_active = False
        if self.monitoring_thread and self.monitoring_thread.is_alive():
            self.monitoring_thread.join(timeout=5)

    def _monitor_resources(self):
        """Background thread sampling this process"""
        process = psutil.Process()
        while self.monitoring_active:
            try:
                self._record_sample(process.memory_info().rss / 1024 / 1024, process.cpu_percent())
                time.sleep(self.sample_interval)
            except Exception as e:
                logger.warning(f"Error in resource monitoring: {e}")
                time.sleep(5)

    def _record_sample(self, memory_mb: float, cpu_percent: float):
        self.memory_samples.append(memory_mb)
        self.cpu_samples.append(cpu_percent)
        self.samples_taken += 1

    def _samples_since(self, samples: deque, count: int) -> List[float]:
        """Samples recorded after the running total was count"""
        new = min(self.samples_taken - count, len(samples))
        return list(samples)[len(samples) - new:] if new > 0 else []

    def _get_current_memory_usage(self) -> float:
        """Current resident memory in MB"""
        try:
            return psutil.Process().memory_info().rss / 1024 / 1024
        except Exception:
            return 0.0

    @asynccontextmanager
    async def measure_async_operation(self, operation_name: str):
        """Async context manager recording duration and memory delta of the block"""
        if not self.enable_monitoring:
            yield
            return

        start_time = time.time()
        memory_before = self._get_current_memory_usage()
        success = False
        error_message = None
        try:
            yield
            success = True
        except Exception as e:
            error_message = str(e)
            raise
        finally:
            end_time = time.time()
            memory_after = self._get_current_memory_usage()
            metric = OperationMetrics(
                operation_name=operation_name,
                start_time=start_time,
                end_time=end_time,
                duration=end_time - start_time,
                memory_before=memory_before,
                memory_after=memory_after,
                memory_delta=memory_after - memory_before,
                success=success,
                error_message=error_message,
            )
            self.operation_metrics.append(metric)

            if metric.duration > SLOW_OPERATION_SECONDS:
                logger.info(f"Performance: {operation_name} took {metric.duration:.2f}s, "
                            f"memory delta: {metric.memory_delta:.2f}MB")

    def start_step_monitoring(self, step_name: str, step_index: int):
        if not self.enable_monitoring:
            return
        self.current_step = StepPerformanceData(step_name=step_name, step_index=step_index, started_at=time.time())
        self.step_sample_start = self.samples_taken
        logger.debug(f"Started monitoring step: {step_name} (index: {step_index})")

    def end_step_monitoring(self, success: bool = True, manual_interventions: int = 0):
        if not self.enable_monitoring or not self.current_step:
            return

        step = self.current_step
        step.duration = time.time() - step.started_at
        step.success = success
        step.manual_interventions = manual_interventions
        memory = self._samples_since(self.memory_samples, self.step_sample_start)
        cpu = self._samples_since(self.cpu_samples, self.step_sample_start)
        step.memory_peak = max(memory) if memory else self._get_current_memory_usage()
        step.cpu_peak = max(cpu) if cpu else 0.0
        self.step_data.append(step)
        self.current_step = None

        logger.info(f"Step performance: {step.step_name} took {step.duration:.2f}s, "
                    f"memory peak: {step.memory_peak:.2f}MB")

    def get_performance_summary(self) -> Dict[str, Any]:
        """Aggregate figures over the measured operations"""
        if not self.operation_metrics:
            return {}

        total_operations = len(self.operation_metrics)
        successful_operations = sum(1 for m in self.operation_metrics if m.success)
        total_duration = sum(m.duration for m in self.operation_metrics)

        return {
            'total_operations': total_operations,
            'successful_operations': successful_operations,
            'success_rate': successful_operations / total_operations * 100,
            'total_duration': total_duration,
            'average_duration': total_duration / total_operations,
            'memory_peak_mb': max(self.memory_samples) if self.memory_samples else 0,
            'cpu_peak_percent': max(self.cpu_samples) if self.cpu_samples else 0,
            'manual_interventions': sum(s.manual_interventions for s in self.step_data),
        }

    def _generate_suggestions(self) -> List[str]:
        suggestions = []
        slow_steps = [s.step_name for s in self.step_data if s.duration > 60 and s.manual_interventions == 0]
        if slow_steps:
            suggestions.append(f"Steps slower than a minute without operator input: {', '.join(slow_steps)}")
        manual_steps = [s.step_name for s in self.step_data if s.manual_interventions > 0]
        if manual_steps:
            suggestions.append(f"Steps that needed the operator: {', '.join(manual_steps)}")
        if self.memory_samples and max(self.memory_samples) > 500:
            suggestions.append("High memory usage detected (>500MB)")
        return suggestions

    def generate_performance_report(self, run_id: str) -> RunPerformanceReport:
        if not self.run_start_time:
            raise ValueError("Run monitoring not started")

        end_time = self.run_end_time or time.time()
        memory = list(self.memory_samples)
        cpu = list(self.cpu_samples)
        return RunPerformanceReport(
            run_id=run_id,
            start_time=self.run_start_time,
            end_time=end_time,
            total_duration=end_time - self.run_start_time,
            steps_processed=len(self.step_data),
            steps_successful=sum(1 for s in self.step_data if s.success),
            steps_failed=sum(1 for s in self.step_data if not s.success),
            memory_peak=max(memory) if memory else 0,
            memory_average=sum(memory) / len(memory) if memory else 0,
            cpu_peak=max(cpu) if cpu else 0,
            cpu_average=sum(cpu) / len(cpu) if cpu else 0,
            steps=list(self.step_data),
            operations=list(self.operation_metrics),
            suggestions=self._generate_suggestions(),
        )

    def save_performance_report(self, report: RunPerformanceReport, file_path: Optional[str] = None) -> bool:
        """Save a report as JSON; returns False on failure"""
        try:
            file_path = file_path or f"performance_report_{int(time.time())}.json"
            with open(file_path, 'w') as f:
                json.dump(asdict(report), f, indent=2, default=str)
            logger.info(f"Performance report saved to: {file_path}")
            return True
        except Exception as e:
            logger.error(f"Error saving performance report: {e}")
            return False
