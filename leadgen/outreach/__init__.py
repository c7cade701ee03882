"""Email outreach: gating, sending, reply classification, lifecycle, meetings."""

from leadgen.outreach.classifier import Intent, classify_intent
from leadgen.outreach.status import ContactStatus
from leadgen.outreach.gate import check_send_gate, is_business_hours
from leadgen.outreach.lifecycle import process_reply, replay_reply_actions
from leadgen.outreach.sender import send_daily_batch
from leadgen.outreach.monitor import check_for_replies
from leadgen.outreach.meetings import create_meeting
