"""Example: route a new CRM lead by deal size, then email every contact on the account."""
from opsflow.tools.registry import OUTBOX
from opsflow.workflow import compiler, executor

WORKFLOW_YAML = """
name: lead_followup
description: Follow up on new leads
outputs: [route, results.contacted]

nodes:
  - id: new_lead
    type: TRIGGER
    name: New lead
    config: { module: crm, entityType: lead, eventType: created }

  - id: is_big
    type: CONDITION
    name: Big lead?
    config:
      logicalOperator: OR
      conditions:
        - { field: amount, operator: gte, value: 10000 }
        - { field: tags, operator: contains, value: vip }

  - id: alert_sales
    type: ACTION
    name: Alert sales
    config:
      tool: sms.send
      params: { to: "+15550100", message: "Big lead: {CUSTOMER_NAME} ({amount})" }
      resultKey: route

  - id: each_contact
    type: LOOP
    name: Each contact
    config: { sourceKey: contacts, itemVariable: contact, resultKey: contacted }

  - id: welcome
    type: ACTION
    name: Welcome email
    config:
      tool: email.send
      params:
        to: "{contact.email}"
        subject: "Welcome from {ORGANIZATION_NAME}"
        body: "Hi {contact.name}, thanks for your interest."

edges:
  - { from: new_lead, to: is_big }
  - { from: is_big, to: alert_sales, handle: "true" }
  - { from: is_big, to: each_contact, handle: "false" }
  - { from: each_contact, to: welcome, handle: body }
"""


def main():
    wf = compiler.load_workflow(WORKFLOW_YAML)
    payload = {
        "firstName": "Grace",
        "lastName": "Hopper",
        "amount": 2500,
        "tags": ["inbound"],
        "contacts": [
            {"name": "Grace", "email": "grace@example.com"},
            {"name": "Alan", "email": "alan@example.com"},
        ],
    }
    event = {"module": "crm", "entityType": "lead", "eventType": "created"}
    outputs = executor.run_workflow(wf, payload, event=event, dry_run=False)
    print("Outputs:", outputs)
    for message in OUTBOX:
        print("Sent:", message)


if __name__ == "__main__":
    main()
