# roster/confirmation.py - Two-step confirm/cancel protocol for mutating actions

from django.shortcuts import render

DECISION_FIELD = 'decision'
CONFIRM = 'confirm'
CANCEL = 'cancel'

PENDING = 'pending'
CONFIRMED = 'confirmed'
CANCELLED = 'cancelled'


def read_decision(data):
    """Return PENDING, CONFIRMED or CANCELLED for a submitted form.

    A form without a decision has not been shown to the operator yet and
    must go through ``request_confirmation`` first.
    """
    value = data.get(DECISION_FIELD, '')
    if value == CONFIRM:
        return CONFIRMED
    if value == CANCEL:
        return CANCELLED
    return PENDING


def request_confirmation(request, title, text, action_url, payload=None,
                         confirm_label='Yes', tone='question'):
    """Render the confirmation step.

    ``payload`` is echoed back as hidden fields so the decision request
    carries everything the confirmed action needs.
    """
    hidden = [
        (name, value) for name, value in (payload or {}).items()
        if name not in (DECISION_FIELD, 'csrfmiddlewaretoken')
    ]
    return render(request, 'confirm.html', {
        'title': title,
        'text': text,
        'action_url': action_url,
        'hidden_fields': hidden,
        'confirm_label': confirm_label,
        'tone': tone,
        'decision_field': DECISION_FIELD,
        'confirm_value': CONFIRM,
        'cancel_value': CANCEL,
    })
