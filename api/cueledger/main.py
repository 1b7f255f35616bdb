import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cueledger.db.database import init_db
from cueledger.errors import ConcurrentModification, LedgerError
from cueledger.routes import admin, credits, wallets, withdrawals

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = 'Something went wrong, please try again'


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    await init_db()
    yield


app = FastAPI(
    title='CueLedger API',
    description='Wallet ledger and credits economy for the pool platform',
    version='0.1.0',
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Render domain errors as {"error": {"message", "code", "details"}}."""
    if exc.public:
        body = {'message': exc.message, 'code': exc.code, 'details': exc.details}
    else:
        # Internal state problems: log everything, show nothing
        if isinstance(exc, ConcurrentModification):
            logger.warning(f'{exc.code} on {request.method} {request.url.path}: {exc.message}')
        else:
            logger.error(f'{exc.code} on {request.method} {request.url.path}: {exc.message}')
        body = {'message': GENERIC_MESSAGE, 'code': exc.code, 'details': {}}
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({'error': body}),
    )


# Routes
app.include_router(wallets.router, prefix='/api/wallets', tags=['wallets'])
app.include_router(credits.router, prefix='/api/credits', tags=['credits'])
app.include_router(withdrawals.router, prefix='/api/withdrawals', tags=['withdrawals'])
app.include_router(admin.router, prefix='/api/admin', tags=['admin'])


@app.get('/health')
async def health_check():
    """Health check endpoint."""
    return {'status': 'ok', 'service': 'cueledger-api'}
