# infra_cdk/project_cdk_stack.py
from aws_cdk import (
    Stack,
    Duration,
    CfnParameter,
    RemovalPolicy,
    aws_dynamodb as dynamodb,
    aws_events as events,
    aws_events_targets as targets,
    aws_lambda as _lambda,
    aws_apigatewayv2 as apigw,
    aws_apigatewayv2_integrations as apigw_integrations,
    CfnOutput
)
from constructs import Construct

# Keys the handler reads from its environment. Values are passed in as stack parameters.
SECRET_SETTINGS = ["LOGENTRIES_TOKEN", "AUTH0_CLIENT_SECRET", "SLACK_INCOMING_WEBHOOK_URL"]


class ProjectStack(Stack):

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # === Parameters for Deployment ===
        auth0_domain_param = CfnParameter(self, "Auth0Domain", type="String",
            description="The Auth0 tenant domain, e.g. my-tenant.eu.auth0.com.")
        auth0_client_id_param = CfnParameter(self, "Auth0ClientId", type="String",
            description="Client id of the machine-to-machine app allowed to read:logs.")
        secret_params = {
            name: CfnParameter(self, name.title().replace("_", ""), type="String", no_echo=True,
                               description=f"Value for {name}.")
            for name in SECRET_SETTINGS
        }
        daily_report_param = CfnParameter(self, "DailyReportTime", type="String", default="",
            description="HH:MM at which the daily Slack report is sent. Leave empty to disable.")
        slack_send_success_param = CfnParameter(self, "SlackSendSuccess", type="String", default="false",
            allowed_values=["true", "false"],
            description="Post a Slack message after every successful run, not only on errors.")
        log_types_param = CfnParameter(self, "LogTypes", type="String", default="",
            description="Comma-separated Auth0 log types to forward, e.g. s,f,fp. Leave empty for all types.")
        log_level_param = CfnParameter(self, "LogLevel", type="Number", default=0, min_value=0, max_value=4,
            description="Minimum log severity to forward (0 = everything, 4 = critical only).")
        start_from_param = CfnParameter(self, "StartFrom", type="String", default="",
            description="Auth0 log id to start from when no checkpoint is stored yet. Leave empty for the oldest logs.")
        batch_size_param = CfnParameter(self, "BatchSize", type="Number", default=100, min_value=1, max_value=100,
            description="Number of log entries fetched and forwarded per batch.")

        # === Checkpoint storage ===
        state_table = dynamodb.Table(self, "ForwarderStateTable",
            partition_key=dynamodb.Attribute(name="pk", type=dynamodb.AttributeType.STRING),
            sort_key=dynamodb.Attribute(name="sk", type=dynamodb.AttributeType.STRING),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            removal_policy=RemovalPolicy.RETAIN,
            time_to_live_attribute="ttl",
        )

        # === Shared dependency layer (pip install -t lambda_layer/python ...) ===
        common_layer = _lambda.LayerVersion(self, "CommonLayer",
            code=_lambda.Code.from_asset("lambda_layer"),
            compatible_runtimes=[_lambda.Runtime.PYTHON_3_12],
            description="requests, pydantic-settings and friends for the forwarder"
        )

        forward_logs_function = _lambda.Function(self, "ForwardLogsFunction",
            runtime=_lambda.Runtime.PYTHON_3_12,
            code=_lambda.Code.from_asset(".", exclude=["cdk.out", "tests", "cli", "infra_cdk", "lambda_layer", ".venv", "*.md"]),
            handler="lambdas.forward_logs.app.handler",
            timeout=Duration.seconds(60),
            memory_size=256,
            # The checkpoint assumes runs never overlap
            reserved_concurrent_executions=1,
            environment={
                "AUTH0_DOMAIN": auth0_domain_param.value_as_string,
                "AUTH0_CLIENT_ID": auth0_client_id_param.value_as_string,
                "DAILY_REPORT_TIME": daily_report_param.value_as_string,
                "CHECKPOINT_TABLE_NAME": state_table.table_name,
                "BATCH_SIZE": batch_size_param.value_as_string,
                "SLACK_SEND_SUCCESS": slack_send_success_param.value_as_string,
                "LOG_TYPES": log_types_param.value_as_string,
                "LOG_LEVEL": log_level_param.value_as_string,
                "START_FROM": start_from_param.value_as_string,
                "MAX_RUN_SECONDS": "40",
                **{name: param.value_as_string for name, param in secret_params.items()},
            },
            layers=[common_layer]
        )
        state_table.grant_read_write_data(forward_logs_function)

        # === Schedule: every 5 minutes ===
        schedule_rule = events.Rule(self, "ForwardLogsSchedule",
            schedule=events.Schedule.rate(Duration.minutes(5))
        )
        schedule_rule.add_target(targets.LambdaFunction(forward_logs_function))

        # === Manual / dashboard trigger ===
        http_api = apigw.HttpApi(self, "ForwardLogsApi",
            default_integration=apigw_integrations.HttpLambdaIntegration("ForwardLogsIntegration", handler=forward_logs_function)
        )

        # === Outputs ===
        CfnOutput(self, "ForwardLogsApiUrl", value=http_api.url, description="POST a schedule body here to run on demand.")
        CfnOutput(self, "StateTableName", value=state_table.table_name, description="DynamoDB table holding the checkpoint.")
