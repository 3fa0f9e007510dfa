class DumbbellError(Exception):
    '''
    Base class of all errors raised while building a dumbbell scenario.
    '''

class ConfigurationError(DumbbellError):
    '''
    Invalid scenario parameters, e.g., a zero-sized side or a long-link count
    exceeding the number of leaves on that side.
    '''

class AddressSpaceExhausted(DumbbellError):
    '''
    A base prefix cannot supply enough disjoint subnets.
    '''

class FlowMappingError(DumbbellError):
    '''
    The destination of a flow cannot be resolved under the mapping policy.
    '''

class ScenarioInstallError(DumbbellError):
    '''
    The simulation engine disagrees with the scenario being installed.
    '''
