"""
RPA Task Templates

Predefined GUI tasks for the industrial systems the RPA channel usually
drives. A plan step whose operation is a template id runs that template,
with the step parameters as task inputs.
"""

from typing import Optional

from .models import ComputerUseTask, Credentials

ERP_APP = "Kingdee Cloud ERP"
MES_APP = "MES"
SCADA_APP = "SCADA"
OA_APP = "OA"


TEMPLATES: dict[str, ComputerUseTask] = {
    task.id: task
    for task in (
        # ERP
        ComputerUseTask(
            id="kingdee_login",
            name="ERP login",
            description="Log in to the Kingdee Cloud ERP system",
            instructions="Open the ERP, enter the user name and password, click the login button",
            target_application=ERP_APP,
            requires_auth=True,
        ),
        ComputerUseTask(
            id="kingdee_query_voucher",
            name="Query vouchers",
            description="Query accounting vouchers in the ERP",
            instructions=(
                "Open the finance module, open voucher query, set the query "
                "conditions, run the query"
            ),
            target_application=ERP_APP,
        ),
        ComputerUseTask(
            id="kingdee_create_po",
            name="Create purchase order",
            description="Create a purchase order in the ERP",
            instructions=(
                "Open the purchasing module, create a new purchase order, fill in "
                "supplier, material and quantity, save and submit"
            ),
            target_application=ERP_APP,
        ),
        # MES
        ComputerUseTask(
            id="mes_report_production",
            name="Report production",
            description="Report completed production in the MES",
            instructions=(
                "Open the MES, go to production reporting, select the work order, "
                "enter the completed quantity, submit the report"
            ),
            target_application=MES_APP,
        ),
        ComputerUseTask(
            id="mes_check_equipment",
            name="Check equipment status",
            description="Check equipment running status in the MES",
            instructions=(
                "Open the MES, go to equipment monitoring, read the equipment "
                "status and parameters"
            ),
            target_application=MES_APP,
        ),
        # SCADA
        ComputerUseTask(
            id="scada_ack_alarm",
            name="Acknowledge alarm",
            description="Acknowledge an alarm in the SCADA system",
            instructions=(
                "Open the SCADA system, go to the alarm list, select the alarm to "
                "acknowledge, click the acknowledge button"
            ),
            target_application=SCADA_APP,
        ),
        ComputerUseTask(
            id="scada_export_data",
            name="Export historical data",
            description="Export historical data from the SCADA system",
            instructions=(
                "Open the SCADA system, go to historical data, set the time range "
                "and tags, export to Excel"
            ),
            target_application=SCADA_APP,
        ),
        # OA
        ComputerUseTask(
            id="oa_submit_approval",
            name="Submit approval",
            description="Submit an approval request in the OA system",
            instructions=(
                "Open the OA system, go to the approval center, create a request, "
                "fill in the content, choose the approver, submit"
            ),
            target_application=OA_APP,
        ),
        ComputerUseTask(
            id="oa_check_tasks",
            name="Check pending tasks",
            description="List pending tasks in the OA system",
            instructions="Open the OA system, go to the to-do center, read all pending tasks",
            target_application=OA_APP,
        ),
    )
}


def get_template(template_id: str) -> Optional[ComputerUseTask]:
    return TEMPLATES.get(template_id)


def template_ids() -> list[str]:
    return sorted(TEMPLATES)


def instantiate(
    template_id: str,
    task_id: str,
    inputs: Optional[dict[str, str]] = None,
    credentials: Optional[Credentials] = None,
    timeout: Optional[float] = None,
) -> ComputerUseTask:
    """
    Build a concrete task from a template.

    Raises:
        KeyError: Unknown template id
    """
    template = TEMPLATES[template_id]
    return template.model_copy(update={
        "id": task_id,
        "inputs": {**template.inputs, **(inputs or {})},
        "credentials": credentials if template.requires_auth else None,
        "timeout": timeout if timeout is not None else template.timeout,
    })
