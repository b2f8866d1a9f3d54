"""
Rental Core Azure Functions App

Wires the HTTP routes, the LINE webhook and the two scheduled jobs onto
`rental_core.api.handlers`.

Scheduled jobs:
- Monthly billing: 00:05 on the 1st (generate payment rows, then age overdue rows)
- Reminders: 09:00 daily (expiring contracts and overdue rent to the owners)

Run with: func start
"""

import azure.functions as func

from rental_core.api import handlers
from rental_core.config import AppConfig
from rental_core.context.service_context import ServiceContext
from rental_core.utils.json_utils import dumps
from rental_core.utils.logger import configure_logging

app = func.FunctionApp()

# Initialize shared dependencies (once per host process)
config = AppConfig.from_env()
logger = configure_logging("rental_api", config)
context = ServiceContext.from_config(config, create_tables=config.is_development)


def _respond(result: handlers.Response) -> func.HttpResponse:
    status, body = result
    return func.HttpResponse(dumps(body), status_code=status, mimetype="application/json")


def _json_body(req: func.HttpRequest):
    try:
        return req.get_json()
    except ValueError:
        return {}


# Contracts


@app.function_name(name="Contracts")
@app.route(route="contracts", methods=["GET", "POST"], auth_level=func.AuthLevel.FUNCTION)
def contracts(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "POST":
        return _respond(handlers.create_contract(context, _json_body(req)))
    return _respond(handlers.list_contracts(context, dict(req.params)))


@app.function_name(name="ExpiringContracts")
@app.route(route="contracts/expiring", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def expiring_contracts(req: func.HttpRequest) -> func.HttpResponse:
    return _respond(handlers.expiring_contracts(context, dict(req.params)))


@app.function_name(name="Contract")
@app.route(
    route="contracts/{contract_id}", methods=["GET", "PUT", "DELETE"], auth_level=func.AuthLevel.FUNCTION
)
def contract(req: func.HttpRequest) -> func.HttpResponse:
    contract_id = req.route_params.get("contract_id")
    if req.method == "PUT":
        return _respond(handlers.update_contract(context, contract_id, _json_body(req)))
    if req.method == "DELETE":
        return _respond(handlers.delete_contract(context, contract_id))
    return _respond(handlers.get_contract(context, contract_id))


@app.function_name(name="ContractTransition")
@app.route(
    route="contracts/{contract_id}/transition", methods=["POST"], auth_level=func.AuthLevel.FUNCTION
)
def contract_transition(req: func.HttpRequest) -> func.HttpResponse:
    contract_id = req.route_params.get("contract_id")
    return _respond(handlers.transition_contract(context, contract_id, _json_body(req)))


@app.function_name(name="ContractRenewal")
@app.route(route="contracts/{contract_id}/renew", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def contract_renewal(req: func.HttpRequest) -> func.HttpResponse:
    contract_id = req.route_params.get("contract_id")
    return _respond(handlers.renew_contract(context, contract_id, _json_body(req)))


@app.function_name(name="SigningLinks")
@app.route(
    route="contracts/{contract_id}/signing-links", methods=["POST"], auth_level=func.AuthLevel.FUNCTION
)
def signing_links(req: func.HttpRequest) -> func.HttpResponse:
    return _respond(handlers.issue_signing_links(context, req.route_params.get("contract_id")))


# Anonymous: the signing token in the body is verified by the handler
@app.function_name(name="SignContract")
@app.route(route="contracts/{contract_id}/sign", methods=["GET", "POST"], auth_level=func.AuthLevel.ANONYMOUS)
def sign_contract(req: func.HttpRequest) -> func.HttpResponse:
    contract_id = req.route_params.get("contract_id")
    if req.method == "GET":
        return _respond(handlers.list_signatures(context, contract_id))
    return _respond(
        handlers.sign_contract(
            context, contract_id, _json_body(req), forwarded_for=req.headers.get("x-forwarded-for")
        )
    )


# Payments


@app.function_name(name="Payments")
@app.route(route="payments", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def payments(req: func.HttpRequest) -> func.HttpResponse:
    return _respond(handlers.list_payments(context, dict(req.params)))


@app.function_name(name="GeneratePayments")
@app.route(route="payments/generate", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def generate_payments(req: func.HttpRequest) -> func.HttpResponse:
    return _respond(handlers.generate_payments(context, _json_body(req)))


@app.function_name(name="RecordPayment")
@app.route(route="payments/{payment_id}/record", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def record_payment(req: func.HttpRequest) -> func.HttpResponse:
    payment_id = req.route_params.get("payment_id")
    return _respond(handlers.record_payment(context, payment_id, _json_body(req)))


# Analytics and inflation


@app.function_name(name="Analytics")
@app.route(route="analytics", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def analytics(req: func.HttpRequest) -> func.HttpResponse:
    view = req.params.get("view", "snapshot")
    params = dict(req.params)
    if view == "trend":
        return _respond(handlers.income_trend(context, params))
    if view == "occupancy":
        return _respond(handlers.occupancy(context))
    if view == "collection":
        return _respond(handlers.collection(context, params))
    return _respond(handlers.analytics_snapshot(context, params))


@app.function_name(name="Inflation")
@app.route(route="analytics/inflation", methods=["GET", "POST"], auth_level=func.AuthLevel.FUNCTION)
def inflation(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "POST":
        return _respond(handlers.upsert_inflation(context, _json_body(req)))
    return _respond(handlers.get_inflation(context, dict(req.params)))


@app.function_name(name="RentAdjustment")
@app.route(route="analytics/rent-adjustment", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def rent_adjustment(req: func.HttpRequest) -> func.HttpResponse:
    return _respond(handlers.rent_adjustments(context, dict(req.params)))


# LINE


@app.function_name(name="LineWebhook")
@app.route(route="webhooks/line", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def line_webhook(req: func.HttpRequest) -> func.HttpResponse:
    return _respond(
        handlers.line_webhook(context, req.get_body(), req.headers.get("x-line-signature"))
    )


# Cron: HTTP for manual runs, timers for the schedule


@app.function_name(name="CronGeneratePayments")
@app.route(route="cron/generate-payments", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def cron_generate_payments(req: func.HttpRequest) -> func.HttpResponse:
    return _respond(
        handlers.cron_generate_payments(context, req.headers.get("authorization"), dict(req.params))
    )


@app.function_name(name="CronReminders")
@app.route(route="cron/reminders", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def cron_reminders(req: func.HttpRequest) -> func.HttpResponse:
    return _respond(handlers.cron_reminders(context, req.headers.get("authorization")))


def _timer_authorization() -> str:
    return f"Bearer {config.security.cron_secret}" if config.security.cron_secret else ""


@app.function_name(name="MonthlyBillingTimer")
@app.timer_trigger(schedule="0 5 0 1 * *", arg_name="timer", run_on_startup=False)
def monthly_billing_timer(timer: func.TimerRequest) -> None:
    status, body = handlers.cron_generate_payments(context, _timer_authorization())
    logger.info("Monthly billing finished", extra={"status_code": status, "result": dumps(body)})


@app.function_name(name="RemindersTimer")
@app.timer_trigger(schedule="0 0 9 * * *", arg_name="timer", run_on_startup=False)
def reminders_timer(timer: func.TimerRequest) -> None:
    status, body = handlers.cron_reminders(context, _timer_authorization())
    logger.info("Reminders finished", extra={"status_code": status, "result": dumps(body)})
