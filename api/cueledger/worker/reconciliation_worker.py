"""
Reconciliation Worker

Background service that checks wallets against the transaction log once a
day and logs every discrepancy for investigation.

Uses APScheduler for job scheduling.
"""
import asyncio
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cueledger.config import settings
from cueledger.services.reconciliation_service import ReconciliationService

logger = logging.getLogger('reconciliation_worker')


class ReconciliationWorker:
    """Background worker for ledger reconciliation."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession] | None = None):
        if sessionmaker is None:
            engine = create_async_engine(settings.database_url, echo=False)
            sessionmaker = async_sessionmaker(engine, expire_on_commit=False)
        self.async_session = sessionmaker
        self.scheduler = AsyncIOScheduler()

    def schedule(self) -> None:
        # Daily reconciliation (UTC hour from settings)
        self.scheduler.add_job(
            self._run_reconciliation,
            CronTrigger(hour=settings.reconciliation_hour, minute=0, timezone='UTC'),
            id='daily_reconciliation',
            name='Daily Wallet Reconciliation',
            replace_existing=True,
        )

    async def start(self):
        """Start the worker and scheduler."""
        logger.info('Starting Reconciliation Worker...')
        self.schedule()
        self.scheduler.start()
        logger.info('Scheduler started. Jobs:')
        for job in self.scheduler.get_jobs():
            logger.info(f'  - {job.name}: next run at {job.next_run_time}')

        # Keep running
        try:
            while True:
                await asyncio.sleep(60)
        except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
            logger.info('Shutting down...')
            self.scheduler.shutdown()

    async def _run_reconciliation(self) -> dict:
        """Run one reconciliation pass (read-only)."""
        logger.info('Running daily reconciliation...')
        try:
            async with self.async_session() as session:
                result = await ReconciliationService(session).reconcile_all()

            logger.info(f'Reconciliation result: {result}')
            return result
        except Exception as e:
            logger.error(f'Daily reconciliation failed: {e}', exc_info=True)
            raise

    async def run_once(self) -> dict:
        """Run reconciliation immediately (for testing and manual runs)."""
        return await self._run_reconciliation()


async def main():
    """Entry point for the worker."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    worker = ReconciliationWorker()
    await worker.start()


if __name__ == '__main__':
    asyncio.run(main())
