from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from graphmentor.config import CORS_ORIGINS
from graphmentor.errors import TutorError
from graphmentor.chat import router as chat_router
from graphmentor.upload import router as upload_router

logger = logging.getLogger(__name__)

app = FastAPI(title="GraphMentor AI Tutor")

#CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TutorError)
async def tutor_error_handler(request: Request, exc: TutorError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ---------------------------
# Health Check
# ---------------------------
@app.get("/")
async def root():
    return {"message": "GraphMentor API running"}


app.include_router(chat_router)
app.include_router(upload_router)
