import inspect
from typing import Dict, Any, List
from sklearn.ensemble import (
    ExtraTreesRegressor,
    RandomForestRegressor,
    GradientBoostingRegressor,
    AdaBoostRegressor,
    HistGradientBoostingRegressor,
    BaggingRegressor,
    ExtraTreesClassifier,
    RandomForestClassifier,
    GradientBoostingClassifier,
    HistGradientBoostingClassifier,
)
from sklearn.neighbors import KNeighborsRegressor, KNeighborsClassifier
from sklearn.linear_model import (
    LinearRegression,
    Ridge,
    Lasso,
    ElasticNet,
    BayesianRidge,
    SGDRegressor,
    HuberRegressor,
    LogisticRegression,
    RidgeClassifier,
    SGDClassifier,
)
from sklearn.naive_bayes import GaussianNB
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVR, LinearSVR, SVC, LinearSVC
from sklearn.tree import DecisionTreeRegressor, DecisionTreeClassifier
from sklearn.neural_network import MLPRegressor, MLPClassifier
from sklearn.kernel_ridge import KernelRidge

from multisearch.utils.exceptions import ConfigurationError


class ModelFactory:
    """
    Factory for creating the base model of a search with a unified interface.

    Optionally wraps the estimator in a scaling Pipeline; the estimator is
    then the step called 'model', so search parameters address it as
    'model.<param>'.
    """

    REGRESSORS = {
        # Ensembles (Trees)
        'ExtraTreesRegressor': ExtraTreesRegressor,
        'RandomForestRegressor': RandomForestRegressor,
        'DecisionTreeRegressor': DecisionTreeRegressor,
        'GradientBoostingRegressor': GradientBoostingRegressor,
        'HistGradientBoostingRegressor': HistGradientBoostingRegressor,
        'AdaBoostRegressor': AdaBoostRegressor,
        'BaggingRegressor': BaggingRegressor,

        # Nearest Neighbors
        'KNeighborsRegressor': KNeighborsRegressor,

        # Neural Networks
        'MLPRegressor': MLPRegressor,

        # Linear / Kernel
        'LinearRegression': LinearRegression,
        'Ridge': Ridge,
        'Lasso': Lasso,
        'ElasticNet': ElasticNet,
        'KernelRidge': KernelRidge,
        'BayesianRidge': BayesianRidge,
        'SGDRegressor': SGDRegressor,
        'HuberRegressor': HuberRegressor,

        # Support Vector Machines
        'SVR': SVR,
        'LinearSVR': LinearSVR,
    }

    CLASSIFIERS = {
        'ExtraTreesClassifier': ExtraTreesClassifier,
        'RandomForestClassifier': RandomForestClassifier,
        'DecisionTreeClassifier': DecisionTreeClassifier,
        'GradientBoostingClassifier': GradientBoostingClassifier,
        'HistGradientBoostingClassifier': HistGradientBoostingClassifier,
        'KNeighborsClassifier': KNeighborsClassifier,
        'MLPClassifier': MLPClassifier,
        'LogisticRegression': LogisticRegression,
        'RidgeClassifier': RidgeClassifier,
        'SGDClassifier': SGDClassifier,
        'GaussianNB': GaussianNB,
        'SVC': SVC,
        'LinearSVC': LinearSVC,
    }

    @classmethod
    def create(cls, model_name: str, params: Dict[str, Any] = None, scale_features: bool = False) -> Any:
        """
        Create and return an instantiated (unfitted) model.
        """
        if params is None:
            params = {}

        if model_name in cls.REGRESSORS:
            model_class = cls.REGRESSORS[model_name]
        elif model_name in cls.CLASSIFIERS:
            model_class = cls.CLASSIFIERS[model_name]
        else:
            raise ConfigurationError(
                f"Unknown model name: {model_name}. Available: {cls.get_available_models()}")

        valid_params = cls._filter_params(model_class, params)
        estimator = model_class(**valid_params)

        if scale_features:
            return Pipeline([('scaler', StandardScaler()), ('model', estimator)])
        return estimator

    @classmethod
    def is_classifier(cls, model_name: str) -> bool:
        return model_name in cls.CLASSIFIERS

    @classmethod
    def get_available_models(cls) -> List[str]:
        """Return list of all supported model names."""
        return list(cls.REGRESSORS.keys()) + list(cls.CLASSIFIERS.keys())

    @staticmethod
    def _filter_params(model_class, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `model_class` constructor.
        """
        sig = inspect.signature(model_class.__init__)

        valid_keys = [
            p.name for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]

        # Always allow **kwargs if the model supports it
        has_kwargs = any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values())

        if has_kwargs:
            return params

        return {k: v for k, v in params.items() if k in valid_keys}
