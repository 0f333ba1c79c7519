import asyncio
import html
import logging
import os
import smtplib
from concurrent.futures import ThreadPoolExecutor
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.config import OTP_EXPIRE_MINUTES

logger = logging.getLogger(__name__)

# Thread pool for async email sending
executor = ThreadPoolExecutor(max_workers=3)

# SMTP Configuration for different providers
SMTP_CONFIGS = {
    'gmail': {'host': 'smtp.gmail.com', 'port': 587, 'use_tls': True},
    'outlook': {'host': 'smtp-mail.outlook.com', 'port': 587, 'use_tls': True},
    'yahoo': {'host': 'smtp.mail.yahoo.com', 'port': 587, 'use_tls': True},
    'office365': {'host': 'smtp.office365.com', 'port': 587, 'use_tls': True},
    'custom': {
        'host': os.getenv('SMTP_HOST', 'smtp.example.com'),
        'port': int(os.getenv('SMTP_PORT', 587)),
        'use_tls': True
    }
}


def detect_email_provider(email_address):
    """Auto-detect email provider from email address"""
    email_lower = email_address.lower()
    if '@gmail.com' in email_lower:
        return 'gmail'
    elif '@outlook.com' in email_lower or '@hotmail.com' in email_lower:
        return 'outlook'
    elif '@yahoo.com' in email_lower:
        return 'yahoo'
    else:
        return 'custom'


def get_smtp_config():
    provider = os.getenv('MAIL_PROVIDER', 'auto').lower()
    sender_email = os.getenv('MAIL_USERNAME', '')

    if provider == 'auto':
        provider = detect_email_provider(sender_email)
        logger.debug("Auto-detected mail provider: %s", provider)

    return SMTP_CONFIGS.get(provider, SMTP_CONFIGS['custom'])


def send_email_sync(to_email, subject, html_content, text_content=None):
    """Send email via SMTP. Returns False when delivery did not happen."""
    sender_email = os.getenv('MAIL_USERNAME')
    sender_password = os.getenv('MAIL_PASSWORD')
    sender_name = os.getenv('MAIL_FROM_NAME', 'BeCopy')

    if not sender_email or not sender_password:
        logger.warning("Mail credentials not configured; '%s' to %s was not sent", subject, to_email)
        return False

    smtp_config = get_smtp_config()

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = f"{sender_name} <{sender_email}>"
    message["To"] = to_email

    if text_content:
        message.attach(MIMEText(text_content, "plain"))
    message.attach(MIMEText(html_content, "html"))

    try:
        server = smtplib.SMTP(smtp_config['host'], smtp_config['port'])
        server.ehlo()
        if smtp_config['use_tls']:
            server.starttls()
            server.ehlo()

        server.login(sender_email, sender_password)
        server.send_message(message)
        server.quit()

        logger.info("Email '%s' sent to %s", subject, to_email)
        return True

    except (smtplib.SMTPException, OSError) as e:
        logger.error("Email '%s' to %s failed: %s", subject, to_email, e)
        return False


async def send_email(to_email, subject, html_content, text_content=None):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, send_email_sync, to_email, subject, html_content, text_content)


def _code_block(code):
    return f"""
<table width="100%" style="margin:30px 0;"><tr><td align="center">
    <div style="background:#0284DA;border-radius:12px;padding:20px 40px;display:inline-block;">
        <span style="color:#fff;font-size:36px;font-weight:bold;letter-spacing:10px;font-family:'Courier New',monospace;">{code}</span>
    </div>
</td></tr></table>"""


async def send_otp_email(email, otp, name="User"):
    """Sign-in verification code sent after OAuth."""
    subject = "Your BeCopy sign-in code"

    text_content = f"""
Hello {name},

Your BeCopy verification code is: {otp}

This code is valid for {OTP_EXPIRE_MINUTES} minutes only.

---
The BeCopy Team
    """

    html_content = f"""
<!DOCTYPE html>
<html>
<body style="margin:0;padding:0;font-family:Arial,sans-serif;background:#f5f7fa;">
    <p style="font-size:16px;color:#2d3748;">Hello <strong>{html.escape(str(name))}</strong>,</p>
    <p style="font-size:15px;color:#4a5568;">Use the code below to finish signing in to BeCopy:</p>
    {_code_block(otp)}
    <p style="font-size:14px;color:#856404;">This code is valid for <strong>{OTP_EXPIRE_MINUTES} minutes</strong> only.</p>
    <p style="font-size:14px;color:#718096;">If you didn't request this, please ignore this email.</p>
</body>
</html>
    """

    return await send_email(email, subject, html_content, text_content)


async def send_reset_code_email(email, code):
    subject = "Reset Your Password on BeCopy"
    html_content = f"""
<p>Hello,</p>
<p>We received a request to reset your password on BeCopy.</p>
<p>Your verification code is:</p>
{_code_block(code)}
<p>If you didn't request this, please ignore this email.</p>
<p>Thanks,<br>The BeCopy Team</p>
    """
    return await send_email(email, subject, html_content)


async def send_verification_link_email(email, link):
    subject = "Verify Your Email for BeCopy"
    html_content = f"""
<table style="width:100%; max-width:600px; margin:auto; border-collapse:collapse; background-color:#f9f9f9;">
  <tr>
    <td style="padding:20px; text-align:center;">
      <h2 style="color:#333;">Welcome to BeCopy!</h2>
      <p style="color:#555;">We need to verify your email address to complete your registration.</p>
      <a href="{html.escape(link)}" style="display:inline-block; margin:20px 0; padding:15px 32px; background-color:#4CAF50; color:white; text-decoration:none; border-radius:5px;">Verify Email</a>
      <p style="color:#555;">If you didn't request this, please ignore this email.</p>
    </td>
  </tr>
</table>
    """
    return await send_email(email, subject, html_content)


async def send_application_email(recruiter_email, job, applicant, cover_letter=None, resume_url=None):
    """Tell the recruiter that someone applied to their posting."""
    subject = f"New Application: {job.get('title')} - {applicant.get('name', applicant.get('email'))}"
    # Every value below is user-supplied
    title, company, location, name, email, resume, letter = (
        html.escape(str(value)) for value in (
            job.get("title"), job.get("company"), job.get("jobLocation") or "Not specified",
            applicant.get("name"), applicant.get("email"), resume_url or "",
            cover_letter or "No cover letter provided",
        )
    )
    resume_line = f'<p><strong>Resume:</strong> <a href="{resume}">{resume}</a></p>' if resume_url else ""
    html_content = f"""
<html>
<body style="font-family:Arial,sans-serif;color:#333;line-height:1.6;">
  <div style="font-size:20px;font-weight:bold;margin-bottom:10px;">New Job Application Received</div>
  <div style="background:#f8f9fa;padding:15px;margin:10px 0;border-radius:5px;">
    <h3>Job: {title}</h3>
    <p><strong>Company:</strong> {company}</p>
    <p><strong>Location:</strong> {location}</p>
  </div>
  <h4>Applicant Details:</h4>
  <p><strong>Name:</strong> {name}</p>
  <p><strong>Email:</strong> {email}</p>
  {resume_line}
  <h4>Cover Letter:</h4>
  <p>{letter}</p>
  <div style="margin-top:30px;font-size:14px;color:#777;">This application was submitted through BeCopy.</div>
</body>
</html>
    """
    return await send_email(recruiter_email, subject, html_content)
