"""
Run the procurement workflow end-to-end against the demo catalog and suppliers.
Run: python -m scripts.run_demo_workflow [workspace_id] ["City, ST"]
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from procureflow.core.config import settings
from procureflow.core.errors import ProcurementError
from procureflow.core.logging import setup_logging
from procureflow.db.session import init_db
from procureflow.services.state_store import SqlWorkflowStateStore
from procureflow.services.workflow import StageStateMachine


def run_demo_workflow(workspace_id: str = "demo-workspace", buyer_location: str = None):
    """Run every stage and print each stage summary."""
    setup_logging()
    init_db()
    machine = StageStateMachine(SqlWorkflowStateStore())

    try:
        results = machine.run_full_workflow(
            workspace_id,
            buyer_location=buyer_location or settings.DEFAULT_BUYER_LOCATION,
            item_count_hint=15,
        )
    except ProcurementError as e:
        print(f"❌ {e.code}: {e.message}")
        raise

    print("\n" + "="*60)
    print("PROCUREMENT WORKFLOW COMPLETE")
    print("="*60)
    for result in results:
        print(f"✅ [{result.stage.value}] {result.summary}")

    status = machine.status(workspace_id)
    print(f"\nCurrent stage: {status['currentStage']}")
    print(f"Artifacts: {', '.join(status['completedArtifacts'])}")


if __name__ == "__main__":
    run_demo_workflow(*sys.argv[1:3])
