"""
Outbound email.

Flows hand a template name and a context to :func:`send` and move on. The
message is rendered on the calling thread and delivered by a small pool of
background threads, so a slow or silent relay never holds up a request.
Delivery failures are logged; nothing is retried or queued. Callers that
must not fail because of email (e.g. registration) are still responsible
for catching and logging rendering errors themselves.

Two backends are available, selected by ``MAIL_BACKEND``: ``smtp`` delivers
through an SMTP relay, ``log`` writes the rendered message to the log (for
development).
"""

from typing import Dict, Tuple, Any
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from email.message import EmailMessage
import logging
import smtplib

from flask import Flask, current_app, render_template

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'hypercloud.mailer'

TEMPLATES: Dict[str, Tuple[str, str]] = {
    'verification': ('Verify your email address', 'mail/verification.txt'),
}
"""Template name -> (subject, template path)."""


class UnknownTemplate(ValueError):
    """No such email template."""


class Mailer(ABC):
    """Renders templated messages and hands them to a transport."""

    def __init__(self, sender: str, brandname: str = '',
                 workers: int = 2) -> None:
        self.sender = sender
        self.brandname = brandname
        self._executor = ThreadPoolExecutor(max_workers=workers,
                                            thread_name_prefix='mailer')

    def compose(self, template: str, context: Dict[str, Any]) -> EmailMessage:
        """Render ``template`` into a message addressed to ``context['email']``."""
        try:
            subject, path = TEMPLATES[template]
        except KeyError as e:
            raise UnknownTemplate(f'No email template {template}') from e
        message = EmailMessage()
        message['Subject'] = f'{self.brandname} - {subject}' \
            if self.brandname else subject
        message['From'] = self.sender
        message['To'] = context['email']
        message.set_content(
            render_template(path, brandname=self.brandname, **context)
        )
        return message

    def send(self, template: str, context: Dict[str, Any]) -> Future:
        """
        Render a message now, and deliver it in the background.

        Returns
        -------
        :class:`Future`
            Resolves when delivery finishes. Failures are already logged.

        """
        message = self.compose(template, context)
        future = self._executor.submit(self.deliver, message)
        future.add_done_callback(_log_failure)
        return future

    @abstractmethod
    def deliver(self, message: EmailMessage) -> None:
        """Hand a rendered message to the transport."""


def _log_failure(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logger.error('Could not deliver email: %s', error, exc_info=error)


class SMTPMailer(Mailer):
    """Delivers via an SMTP relay, one connection per message."""

    def __init__(self, sender: str, host: str = 'localhost', port: int = 25,
                 brandname: str = '', timeout: float = 10,
                 workers: int = 2) -> None:
        super(SMTPMailer, self).__init__(sender, brandname, workers)
        self._host = host
        self._port = port
        self._timeout = timeout

    def deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(host=self._host, port=self._port,
                          timeout=self._timeout) as conn:
            conn.send_message(message)
        logger.debug('Sent %s to %s', message['Subject'], message['To'])


class LogMailer(Mailer):
    """Writes messages to the log instead of sending them."""

    def deliver(self, message: EmailMessage) -> None:
        logger.info('Mail to %s: %s\n%s', message['To'], message['Subject'],
                    message.get_content())


def init_app(app: Flask) -> None:
    """Set configuration defaults for an application instance."""
    app.config.setdefault('MAIL_BACKEND', 'log')
    app.config.setdefault('MAIL_FROM', 'noreply@localhost')
    app.config.setdefault('MAIL_WORKERS', '2')
    app.config.setdefault('SMTP_HOST', 'localhost')
    app.config.setdefault('SMTP_PORT', '25')
    app.config.setdefault('SMTP_TIMEOUT', '10')
    app.config.setdefault('BRANDNAME', '')


def get_mailer(app: Flask) -> Mailer:
    """Build the mailer configured for ``app``."""
    config = app.config
    backend = config['MAIL_BACKEND']
    workers = int(config['MAIL_WORKERS'])
    if backend == 'smtp':
        return SMTPMailer(config['MAIL_FROM'], config['SMTP_HOST'],
                          int(config['SMTP_PORT']), config['BRANDNAME'],
                          float(config['SMTP_TIMEOUT']), workers)
    if backend == 'log':
        return LogMailer(config['MAIL_FROM'], config['BRANDNAME'], workers)
    raise ValueError(f'Unknown mail backend {backend}')


def current_mailer() -> Mailer:
    """Get/create the :class:`Mailer` for the current application."""
    app = current_app._get_current_object()     # type: ignore
    if EXTENSION_KEY not in app.extensions:
        app.extensions[EXTENSION_KEY] = get_mailer(app)
    mailer: Mailer = app.extensions[EXTENSION_KEY]
    return mailer


def send(template: str, context: Dict[str, Any]) -> Future:
    """Send a templated message with the current application's mailer."""
    return current_mailer().send(template, context)
