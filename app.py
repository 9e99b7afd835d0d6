import asyncio
import os
import time
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from graph.errors import PipelineError, ValidationError
from graph.workflow import run_pipeline
from tools.apollo import ApolloClient
from tools.mailer import SmtpMailer, normalize_recipients
from tools.rate_limit import RateLimiter

VERSION = "1.0.0"

# Configure logging
logger.add(
    os.path.join(os.getenv("LOG_DIR", "logs"), "app.log"),
    rotation="1 day",
    retention="7 days",
    level="INFO",
)

# Initialize FastAPI app
app = FastAPI(
    title="Survey Outreach Contact Finder",
    description="Finds prospects with verified work emails and sends them survey invitations",
    version=VERSION,
)

email_limiter = RateLimiter(
    limit=int(os.getenv("EMAIL_RATE_LIMIT", "5")),
    window=float(os.getenv("EMAIL_RATE_WINDOW", "60")),
)


def get_apollo_client() -> ApolloClient:
    return ApolloClient()


def get_mailer() -> SmtpMailer:
    return SmtpMailer.from_env()


def error_response(exc: PipelineError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.post("/api/people")
async def find_people(req: Request):
    """
    Find up to ``limit`` prospects with a verified work email.

    Expected payload:
    {
        "title": "Head of Product",
        "location": "California, US",
        "industry": "fintech",
        "limit": 5
    }
    """
    start_time = time.time()

    try:
        client = get_apollo_client()
        client.ensure_configured()

        try:
            body = await req.json()
        except ValueError:
            raise ValidationError("Invalid JSON body")

        result = await run_pipeline(body, client=client)
    except PipelineError as e:
        logger.error(f"People search failed at {e.step} ({e.status_code}): {e.error}")
        return error_response(e)

    logger.info(f"People search completed in {time.time() - start_time:.2f}s")
    return JSONResponse(status_code=200, content=result)


@app.post("/api/email/send")
async def send_email(req: Request):
    """
    Send a survey invitation to a list of prospects (Bcc).

    Expected payload:
    {
        "recipients": ["ann@acme.com"],
        "subject": "Quick research interview",
        "body": "Hi! Would you share your thoughts...",
        "agentLink": "https://survey.example.com/agent?session=...",
        "sessionId": "6f1c..."
    }
    """
    client_key = req.client.host if req.client else "unknown"
    if not email_limiter.hit(client_key):
        logger.warning(f"Email rate limit exceeded for {client_key}")
        return JSONResponse(status_code=429, content={"error": "Too many requests"})

    try:
        payload = await req.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    recipients = normalize_recipients(payload.get("recipients"))
    subject = payload.get("subject").strip() if isinstance(payload.get("subject"), str) else ""
    body = payload.get("body") if isinstance(payload.get("body"), str) else ""
    agent_link = payload.get("agentLink").strip() if isinstance(payload.get("agentLink"), str) else ""
    html_body = payload.get("htmlBody") if isinstance(payload.get("htmlBody"), str) else None

    if not recipients:
        return JSONResponse(status_code=400, content={"error": "At least one valid recipient is required."})
    if not subject:
        return JSONResponse(status_code=400, content={"error": "Email subject is required."})
    if not body.strip():
        return JSONResponse(status_code=400, content={"error": "Email body cannot be empty."})

    mailer = get_mailer()
    if not mailer.is_configured:
        logger.error("SMTP settings incomplete, cannot send email")
        return JSONResponse(status_code=500, content={"error": "Email service is not configured."})

    session_id = payload.get("sessionId")
    try:
        # smtplib blocks; keep it off the event loop
        await asyncio.to_thread(
            mailer.send, recipients, subject, body, agent_link=agent_link, html_body=html_body
        )
    except (OSError, ValueError) as e:
        # smtplib.SMTPException subclasses OSError
        logger.error(f"Email send failed for session {session_id}: {e}")
        return JSONResponse(status_code=502, content={"error": "Unable to send email. Please try again."})

    logger.info(f"Email sent for session {session_id} to {len(recipients)} recipients")
    return JSONResponse(status_code=200, content={"status": "sent"})


@app.get("/health")
def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": VERSION,
        "services": {
            "redis": "connected" if email_limiter.r else "disconnected",
            "apollo": "configured" if get_apollo_client().is_configured else "missing_api_key",
        },
    }


# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"step": "internal", "error": "Internal server error"},
    )


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Survey Outreach Contact Finder")

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level="info",
    )
