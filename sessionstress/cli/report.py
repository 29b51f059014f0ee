from __future__ import annotations

from typing import Iterable

from sessionstress.client import DestroyError
from sessionstress.runner import UserRunResult


def print_results(results: Iterable[UserRunResult]) -> None:
    print("\n--- Stress Test Results ---")
    for result in results:
        print(f"\nResults for user: {result.username}")
        print(f"Total sessions: {result.total_sessions}")
        print(f"Successful sessions: {result.successful}")
        print(f"Failed sessions: {result.failed}")
        print(f"Average time to ready: {result.average_time_to_ready:.2f} seconds")
        print(f"Total duration: {result.total_duration:.2f} seconds")

        if result.errors:
            print("Errors encountered:")
            for error in result.errors:
                print(f"  - {error}")

        if result.tasks:
            print("\nDetailed session results:")
        for task in result.tasks:
            print(f"  Session #{task.number}:")
            print(f"    Time to ready: {task.time_to_ready:.2f} seconds")
            if task.successful:
                print("    Status: Success")
            else:
                print(f"    Error: {task.execution_error}")
        print("-" * 30)


def print_teardown(destroyed: int, errors: list[DestroyError]) -> None:
    if not errors:
        print(f"\nAll {destroyed} session(s) have been destroyed. Test complete.")
        return

    print(
        f"\nTest complete, but {len(errors)} of {destroyed} session(s) could not be destroyed:"
    )
    for error in errors:
        print(f"  - {error}")
