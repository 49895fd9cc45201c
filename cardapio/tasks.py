"""
Celery Tasks
Background export of stored orders to the staff spreadsheet.
"""

import time
from datetime import datetime

from cardapio.celery_worker import celery_app
from cardapio.core.config import get_logger
from cardapio.services.excel_manager import ExcelManager

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_order_to_excel(self, order_data: dict) -> dict:
    """
    Append an order to the Excel export.

    Args:
        order_data: `OrderRecord.to_dict()` of a stored order

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = order_data.get('id', 'unknown')

    logger.info(f"📋 Task {task_id}: Exporting order #{order_id}")
    start_time = time.time()

    try:
        result = ExcelManager.export_order(order_data)

        elapsed = round(time.time() - start_time, 3)
        result['task_id'] = task_id
        result['processing_time_seconds'] = elapsed

        if result['success']:
            logger.info(f"✅ Task {task_id}: Order #{order_id} exported in {elapsed}s")
        else:
            logger.warning(f"⚠️ Task {task_id}: Order #{order_id} failed - {result['message']}")

        return result

    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        logger.error(f"❌ Task {task_id}: Order #{order_id} error after {elapsed}s - {e}")
        raise


@celery_app.task
def health_check() -> dict:
    """Verify the worker is consuming tasks."""
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }


@celery_app.task
def clear_excel_file() -> dict:
    """Remove the Excel export (testing/reset)."""
    success = ExcelManager.clear_all()
    return {
        'success': success,
        'message': 'Excel file cleared' if success else 'Failed to clear Excel file',
        'timestamp': datetime.now().isoformat()
    }
