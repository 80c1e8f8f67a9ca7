from dailybag.modules.billing.services import CleanPaymentUrl, PaymentReturnHandler, ResolvePaymentReturn


def test_checkout_session_counts_as_success():
    result = ResolvePaymentReturn("https://app.example.com/settings?session_id=cs_123&tab=plan")
    assert result.Status == "success"
    assert result.Title == "Payment successful!"
    assert result.DurationMs == 5000
    assert result.CleanUrl == "/settings?tab=plan"


def test_payment_parameter_statuses():
    assert ResolvePaymentReturn("/?payment=success").Status == "success"
    canceled = ResolvePaymentReturn("/?payment=canceled")
    assert canceled.Status == "canceled"
    assert canceled.Title == "Payment canceled"
    assert canceled.DurationMs == 4000


def test_legacy_flags():
    assert ResolvePaymentReturn("/billing?success=true").Status == "success"
    assert ResolvePaymentReturn("/billing?canceled=true").Status == "canceled"
    assert ResolvePaymentReturn("/billing?success=false").Status == "none"


def test_plain_url_has_no_notice():
    result = ResolvePaymentReturn("/chores?view=week")
    assert result.Status == "none"
    assert result.Title is None
    assert result.CleanUrl == "/chores?view=week"


def test_clean_url_strips_every_payment_parameter():
    assert CleanPaymentUrl("/?payment=success&session_id=x&success=true&canceled=true") == "/"
    assert CleanPaymentUrl("https://host/path?a=1&payment=canceled&b=2") == "/path?a=1&b=2"


def test_handler_shows_each_return_once():
    handler = PaymentReturnHandler()
    url = "/?payment=success"

    assert handler.Handle(url, owner=1).Status == "success"
    repeat = handler.Handle(url, owner=1)
    assert repeat.Status == "none"
    assert repeat.CleanUrl == "/"
    assert handler.Handle(url, owner=2).Status == "success"
