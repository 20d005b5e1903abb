import logging
from typing import Optional

from seriesdb.errors import InvalidQueryError
from seriesdb.models import Dataset, Observation, ValueType
from seriesdb.nodata import NoDataPolicy
from seriesdb.query import Query
from seriesdb.value.formatters import FORMATTERS, ValueFormatter
from seriesdb.value.models import OutputValue, ValidTime

logger = logging.getLogger(__name__)


class ValueAssembler:
    """
    Turns one observation into an output value.

    The steps are shared by all value types; only the payload formatter
    differs between the assemblers returned by assembler_for().
    """

    def __init__(self, value_type: ValueType, formatter: ValueFormatter):
        self.value_type = value_type
        self.formatter = formatter

    def assemble(
        self,
        observation: Observation,
        dataset: Dataset,
        query: Query,
        policy: NoDataPolicy,
    ) -> Optional[OutputValue]:
        """
        Build the output value for an observation, or None if its raw value
        is a no-data sentinel for the dataset's service.
        """
        if policy.is_no_data_value(observation.value):
            return None
        value = self.create_value(observation, dataset, query)
        return self.add_metadata(observation, value, dataset, query)

    def create_value(self, observation: Observation, dataset: Dataset, query: Query) -> OutputValue:
        timeend = observation.sampling_time_end
        timestart = observation.sampling_time_start
        if timeend is None:
            logger.warning(
                "Observation %s of dataset %s has no sampling end time", observation.id, dataset.id
            )
        value = OutputValue(timestamp=timeend, value=self.formatter(observation.value, dataset))
        if query.show_time_intervals and timestart is not None:
            value.timestart = timestart
        return value

    def add_metadata(
        self, observation: Observation, value: OutputValue, dataset: Dataset, query: Query
    ) -> OutputValue:
        if observation.result_time is not None:
            value.result_time = observation.result_time
        if query.expanded:
            if observation.valid_time_start is not None or observation.valid_time_end is not None:
                value.valid_time = ValidTime(observation.valid_time_start, observation.valid_time_end)
            value.parameters = list(observation.parameters)
            value.geometry = observation.geometry
        elif dataset.is_mobile:
            value.geometry = observation.geometry
        return value


ASSEMBLERS: dict[ValueType, ValueAssembler] = {
    value_type: ValueAssembler(value_type, formatter) for value_type, formatter in FORMATTERS.items()
}


def assembler_for(value_type: ValueType) -> ValueAssembler:
    try:
        return ASSEMBLERS[value_type]
    except KeyError:
        raise InvalidQueryError(f"No values can be assembled for value type '{value_type.value}'") from None
