"""
Constants used throughout the application.
"""
CONSENT_PENDING = 'pending'
CONSENT_GRANTED = 'granted'
CONSENT_DECLINED = 'declined'

CANDIDATE_AWAITING_CONSENT = 'awaiting_consent'
CANDIDATE_ACTIVE = 'active'
CANDIDATE_ARCHIVED = 'archived'

REFEREE_INVITED = 'invited'
REFEREE_PENDING = 'pending'
REFEREE_COMPLETED = 'completed'
REFEREE_DECLINED = 'declined'

REQUEST_PENDING = 'pending'
REQUEST_COMPLETED = 'completed'
REQUEST_DECLINED = 'declined'
REQUEST_ARCHIVED = 'archived'

USER_ACTIVE = 'active'
USER_INVITED = 'invited'
USER_DISABLED = 'disabled'
USER_STATUSES = (USER_ACTIVE, USER_INVITED, USER_DISABLED)

ALREADY_GRANTED_MESSAGE = "You have already granted consent — no changes made."
ARCHIVED_REFERENCE_MESSAGE = "This reference request has been archived and is no longer active."
TEMPLATE_UNAVAILABLE_MESSAGE = "Template not found or inactive"
INVALID_LINK_MESSAGE = "Invalid or expired link"
RESEND_LIMIT_MESSAGE = "Resend limit reached (3 within 14 days)."
GENERIC_FAILURE_MESSAGE = "Something went wrong, please try again."
CONFIRM_REFEREES_TEXT = (
    "I confirm these details are correct and I consent to Refevo contacting "
    "my referees for a reference."
)

# Requests pending longer than this are flagged as overdue on the dashboard
OVERDUE_AFTER_DAYS = 7

AUDIT_PAGE_SIZE = 20

RATING_SCALE_DEFAULT = 5

DEFAULT_REF_TYPES = [
    {"value": "manager", "label": "Line Manager"},
    {"value": "colleague", "label": "Colleague"},
]

DEFAULT_QUESTIONS = [
    {
        "key": "relationship",
        "label": "How do you know {candidate_name}, and for how long?",
        "kind": "textarea",
        "required": True
    },
    {
        "key": "performance",
        "label": "How would you rate {candidate_name}'s overall performance?",
        "kind": "rating",
        "required": True,
        "scale": 5
    },
    {
        "key": "strengths",
        "label": "What were {candidate_name}'s greatest strengths?",
        "kind": "textarea",
        "required": True
    },
    {
        "key": "improvements",
        "label": "What areas could {candidate_name} improve in?",
        "kind": "textarea",
        "required": False
    },
    {
        "key": "rehire",
        "label": "Would you rehire {candidate_name}?",
        "kind": "text",
        "required": False
    }
]

EMAIL_EVENT_STATUSES = {
    'email.delivered': 'sent',
    'email.bounced': 'bounced',
    'email.complained': 'complained',
}

OPT_OUT_REASON = "User clicked unsubscribe link"
